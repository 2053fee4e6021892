from TypstReport.validator import SyntaxDiagnostic, TypstSyntaxChecker, check_syntax


def messages(source: str) -> list[str]:
    return [diag.message for diag in check_syntax(source)]


def test_accepts_common_markup():
    source = (
        '#set document(title: "Doc", author: "Me")\n\n'
        "#let toc() = outline(\n  title: none,\n)\n\n"
        "= Title\n\n"
        "Some *bold* and _emph_ text with `code` and $x^2$.\n\n"
        "- item\n+ step\n\n"
        '#text("Styled", fill: red, size: 12pt)\n\n'
        '#link(target: "https://example.com")[Example]\n\n'
        '#figure(image("a.png", width: 80%), caption: [Cap \\[1\\]], kind: image)\n\n'
        "#table(columns: ((flex: 1,), (flex: 1,)))[\n  [A] [B]\n  [1] [2]\n]\n"
    )

    assert check_syntax(source) == []


def test_reports_unclosed_call_with_position():
    diagnostics = check_syntax('Intro\n#text("a"')

    assert diagnostics == [SyntaxDiagnostic(message="unclosed delimiter", offset=11, line=2, column=6)]
    assert str(diagnostics[0]) == "2:6: unclosed delimiter"


def test_reports_stray_closing_bracket():
    diagnostics = check_syntax("ok\n]")

    assert [(d.message, d.line, d.column) for d in diagnostics] == [("unexpected closing bracket", 2, 1)]


def test_matched_brackets_in_text_are_fine():
    assert check_syntax("#box[a [b] c]") == []
    assert check_syntax("plain [text] here") == []


def test_escaped_brackets_are_text():
    assert check_syntax("a \\] b \\[ c") == []


def test_reports_mismatched_closer_in_code():
    diagnostics = check_syntax("#{ 1) }")

    assert [(d.message, d.column) for d in diagnostics] == [("unexpected closing paren", 5)]


def test_reports_unclosed_string():
    diagnostics = check_syntax('#let x = "abc')

    assert [(d.message, d.column) for d in diagnostics] == [("unclosed string", 10)]


def test_reports_unclosed_block_comment():
    assert messages("text /* never closed") == ["unclosed comment"]


def test_nested_block_comments():
    assert check_syntax("a /* outer /* inner */ still */ b") == []


def test_reports_stray_comment_end():
    assert messages("text */") == ["unexpected end of block comment"]


def test_reports_unclosed_raw_block():
    assert messages("```python\nprint(1)\n") == ["unclosed raw text"]


def test_empty_raw_is_valid():
    assert check_syntax("before `` after") == []


def test_delimiters_inside_raw_are_ignored():
    assert check_syntax("```python\nitems = [1, 2\n```\n") == []


def test_reports_unclosed_math():
    assert messages("$x + y") == ["unclosed delimiter"]


def test_urls_do_not_start_comments():
    assert check_syntax("[https://example.com/*path]") == []


def test_statement_ends_at_enclosing_bracket():
    assert check_syntax("#box[#set text(red)]") == []
    assert check_syntax("#set text(size: 12pt); Body") == []


def test_diagnostics_are_sorted_by_offset():
    diagnostics = check_syntax("]\n#f(")

    assert [d.message for d in diagnostics] == ["unexpected closing bracket", "unclosed delimiter"]
    assert [(d.line, d.column) for d in diagnostics] == [(1, 1), (2, 3)]


def test_checker_class_matches_function():
    source = "#f(]"

    assert TypstSyntaxChecker().check(source) == check_syntax(source)
    assert "unexpected closing bracket" in messages(source)


def test_reports_unclosed_strong():
    diagnostics = check_syntax("Price * 2")

    assert [(d.message, d.column) for d in diagnostics] == [("unclosed delimiter", 7)]


def test_reports_unclosed_emphasis():
    assert messages("an _unclosed emph") == ["unclosed delimiter"]


def test_paragraph_break_ends_strong():
    diagnostics = check_syntax("a\n\n*b\n\nc*")

    assert diagnostics[0].offset == 3
    assert diagnostics[0].message == "unclosed delimiter"


def test_strong_may_span_a_single_newline():
    assert check_syntax("*bold\ncontinues*") == []


def test_content_block_end_ends_strong():
    diagnostics = check_syntax("#box[*a]")

    assert [(d.message, d.column) for d in diagnostics] == [("unclosed delimiter", 6)]


def test_heading_line_end_ends_strong():
    diagnostics = check_syntax("= Head *x\nBody\n")

    assert [(d.message, d.line, d.column) for d in diagnostics] == [("unclosed delimiter", 1, 8)]


def test_list_item_end_ends_strong():
    assert messages("- item *a\n- next") == ["unclosed delimiter"]
    assert check_syntax("- item *a\n  still*") == []


def test_balanced_strong_and_emphasis():
    assert check_syntax("Some *bold _both_* and _emph_ text, ** empty") == []
    assert check_syntax("[*a*] plain [_b_]") == []


def test_delimiters_inside_words_are_text():
    assert check_syntax("snake_case and 2*3 and a_b_c") == []


def test_escaped_and_url_delimiters_are_text():
    assert check_syntax("\\*not strong\\* and https://example.com/some_path_x") == []


def test_reports_unclosed_label():
    diagnostics = check_syntax("see <lab here")

    assert [(d.message, d.column) for d in diagnostics] == [("unclosed label", 5)]


def test_labels_and_references():
    assert check_syntax("= Intro <intro_part>\nSee @intro_part and a < b.") == []
