import logging
from pathlib import Path

import pytest

from TypstReport.exceptions import CompilationError, GeneratorDefectError, PersistenceError
from TypstReport.model import (
    FigureKind,
    Image,
    Outline,
    Section,
    bullets,
    code,
    figure,
    link_to_url,
    numbered,
    paragraph,
    raw,
    table,
    text,
)
from TypstReport.report import Report
from TypstReport.utils import configure_logging


class StubCompiler:
    def __init__(self, payload: bytes = b"%PDF-1.7 stub"):
        self.payload = payload
        self.calls: list[tuple[str, Path]] = []

    def compile(self, source: str, base_path: Path) -> bytes:
        self.calls.append((source, base_path))
        return self.payload


class FailingCompiler:
    def compile(self, source: str, base_path: Path) -> bytes:
        raise CompilationError(base_path, "unknown variable: missing")


def weekly_status() -> Report:
    return (
        Report("Weekly Status")
        .with_author("Ada Lovelace")
        .add_front_matter(paragraph("This report summarizes the week."))
        .add_section(
            Section("Highlights")
            .add_block(bullets(["Released v1.2", "Onboarded new teammate"]))
            .add_subsection(
                Section("Release Details").add_block(
                    paragraph("The release focused on stability and internal metrics.")
                )
            )
        )
        .add_section(Section("Metrics").add_block(table(["Key Metric", "Value"], [["Users", "1,024"]])))
    )


def test_renders_report_with_outline_and_sections():
    rendered = weekly_status().render_markup()

    assert '#set document(title: "Weekly Status", author: "Ada Lovelace")' in rendered
    assert "#outline()" in rendered
    assert "\n= Weekly Status\n" in rendered
    assert "\n== Highlights\n" in rendered
    assert "\n=== Release Details\n" in rendered
    assert "- Released v1.2\n- Onboarded new teammate\n" in rendered
    assert "#table(columns: ((flex: 1,), (flex: 1,)))[" in rendered


def test_render_order_puts_front_matter_before_sections():
    rendered = weekly_status().render_markup()

    positions = [
        rendered.index("#set document"),
        rendered.index("= Weekly Status"),
        rendered.index("#outline()"),
        rendered.index("This report summarizes the week."),
        rendered.index("== Highlights"),
        rendered.index("=== Release Details"),
        rendered.index("== Metrics"),
    ]
    assert positions == sorted(positions)


def test_validated_render_accepts_generated_markup():
    validation = weekly_status().render_validated()

    assert validation.ok
    assert validation.markup == weekly_status().render_markup()


def test_outline_can_be_disabled():
    rendered = Report("Plain").with_outline(False).render_markup()

    assert "#outline()" not in rendered


def test_author_is_optional_and_title_is_escaped():
    rendered = Report('Say "hi" \\ bye').render_markup()

    assert rendered.startswith('#set document(title: "Say \\"hi\\" \\\\ bye")\n')


def test_sets_page_headers_and_footers():
    rendered = (
        Report("Branded")
        .header("Company Report")
        .footer("Page {{page()}} of {{pages()}}")
        .add_section(Section("Summary").add_block(paragraph("Quarterly performance overview.")))
        .render_markup()
    )

    assert "#set page(header: [Company Report], footer: [Page {{page()}} of {{pages()}}])" in rendered


def test_header_accepts_blocks():
    rendered = Report("Branded").header([paragraph(text("ACME").weight("bold"))]).render_markup()

    assert '#set page(header: [#text("ACME", weight: bold)])' in rendered


def test_renders_table_of_contents_when_enabled():
    rendered = (
        Report("With sections")
        .with_contents_table(True)
        .add_section(Section("First"))
        .add_section(Section("Second"))
        .render_markup()
    )

    assert "#let contents_table() = outline(\n  title: none,\n)" in rendered
    assert "= Table of Contents" in rendered
    assert "#contents_table()" in rendered
    assert rendered.index("#let contents_table()") < rendered.index("= With sections")


def test_renders_table_of_figures_when_enabled():
    rendered = (
        Report("With figures")
        .with_figure_table(True)
        .add_section(
            Section("Illustrations").add_block(figure(Image("./figure.png").width("50%")).with_caption("Sample figure"))
        )
        .render_markup()
    )

    assert "#let figure_table() = outline(\n  title: none,\n  target: figure,\n)" in rendered
    assert "= Table of Figures" in rendered
    assert "#figure_table()" in rendered


def test_custom_contents_outline():
    rendered = Report("Custom").with_contents_table(True, Outline(depth=2)).render_markup()

    assert "#let contents_table() = outline(\n  depth: 2,\n)" in rendered


def test_renders_report_with_everything_enabled():
    report = (
        Report("Everything Everywhere")
        .with_author("Every Tester")
        .header("Universal Header")
        .footer("Universal Footer")
        .with_outline(True)
        .with_contents_table(True)
        .with_figure_table(True)
        .add_front_matter(paragraph(text("Front matter").fill("blue")))
        .add_section(
            Section("Overview")
            .add_block(paragraph("Overview body."))
            .add_block(bullets(["Item A", "Item B"]))
            .add_block(numbered(["Step 1", "Step 2"]))
            .add_block(table(["Key", "Value"], [["X", "Y"]]))
            .add_block(link_to_url("https://docs.example.com", text("Docs")))
            .add_subsection(
                Section("Details")
                .add_block(code("bash", "echo details"))
                .add_block(
                    figure(Image("./diagram.svg").width("80%"))
                    .with_caption("Everything diagram")
                    .with_kind(FigureKind.IMAGE)
                )
            )
        )
    )

    validation = report.render_validated()
    assert validation.ok, validation.messages
    rendered = validation.markup
    assert '#set document(title: "Everything Everywhere", author: "Every Tester")' in rendered
    assert "#set page(header: [Universal Header], footer: [Universal Footer])" in rendered
    assert '#text("Front matter", fill: blue)' in rendered
    assert "== Overview" in rendered
    assert "+ Step 1" in rendered
    assert '#link(target: "https://docs.example.com")[Docs]' in rendered
    assert '#figure(image("./diagram.svg", width: 80%), caption: [Everything diagram], kind: image)' in rendered


def test_validated_render_surfaces_syntax_errors():
    report = Report("Broken").add_section(Section("Faulty").add_block(raw("[#unclosed(")))

    validation = report.render_validated()

    assert not validation.ok
    assert validation.markup is None
    assert any("unclosed" in message for message in validation.messages)


def test_render_aborts_on_invalid_markup(tmp_path: Path):
    report = Report("Broken").add_section(Section("Faulty").add_block(raw("[#unclosed(")))

    with pytest.raises(GeneratorDefectError) as excinfo:
        report.render(output_dir=tmp_path)

    assert "unclosed delimiter" in str(excinfo.value)
    assert excinfo.value.diagnostics
    assert not (tmp_path / "broken.typ").exists()


def test_render_writes_typ_file_using_title(tmp_path: Path):
    report = Report("Build & Ship!").add_section(Section("Summary").add_block(paragraph("Ready to go.")))

    rendered = report.render(output_dir=tmp_path)

    saved = (tmp_path / "build_ship.typ").read_text(encoding="utf-8")
    assert saved == rendered
    assert not (tmp_path / "build_ship.pdf").exists()


def test_render_defaults_to_current_directory(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    Report("!!!").render()

    assert (tmp_path / "report.typ").exists()


def test_render_overwrites_previous_output(tmp_path: Path):
    (tmp_path / "notes.typ").write_text("stale", encoding="utf-8")

    rendered = Report("Notes").render(output_dir=tmp_path)

    assert (tmp_path / "notes.typ").read_text(encoding="utf-8") == rendered


def test_render_writes_pdf_when_configured(tmp_path: Path):
    compiler = StubCompiler()
    report = Report("PDF please").with_pdf().add_section(Section("Summary").add_block(paragraph("PDF output.")))

    rendered = report.render(output_dir=tmp_path, compiler=compiler)

    assert (tmp_path / "pdf_please.pdf").read_bytes() == b"%PDF-1.7 stub"
    assert compiler.calls == [(rendered, tmp_path / "pdf_please.typ")]


def test_compilation_failure_is_raised_without_pdf(tmp_path: Path):
    report = Report("Doomed").with_pdf()

    with pytest.raises(CompilationError, match="unknown variable"):
        report.render(output_dir=tmp_path, compiler=FailingCompiler())

    assert not (tmp_path / "doomed.pdf").exists()


def test_persistence_failure_names_the_path(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(PersistenceError) as excinfo:
        Report("Nowhere").render(output_dir=blocker)

    assert excinfo.value.path == blocker / "nowhere.typ"
    assert str(blocker / "nowhere.typ") in str(excinfo.value)


def test_paragraphs_accept_shared_text_objects():
    shared = text("Shared content")

    rendered = (
        Report("Shared Text")
        .add_section(Section("Body").add_block(paragraph(shared)).add_block(paragraph(shared)))
        .render_markup()
    )

    assert rendered.count("Shared content\n\n") >= 2


def test_output_paths_follow_title():
    typ_path, pdf_path = Report("Weekly Status").output_paths("/tmp/out")

    assert typ_path == Path("/tmp/out/weekly_status.typ")
    assert pdf_path == Path("/tmp/out/weekly_status.pdf")


def test_render_logs_saved_paths(tmp_path: Path, caplog):
    configure_logging(verbose=True)

    with caplog.at_level(logging.INFO, logger="TypstReport.report"):
        Report("Logged").render(output_dir=tmp_path)

    assert f"Saved markup to {tmp_path / 'logged.typ'}" in caplog.text


def test_unbalanced_strong_marker_in_plain_text_is_rejected(tmp_path: Path):
    report = Report("Pricing").add_section(Section("Costs").add_block(paragraph("Price * 2")))

    validation = report.render_validated()

    assert not validation.ok
    assert validation.messages == ["unclosed delimiter"]
    with pytest.raises(GeneratorDefectError):
        report.render(output_dir=tmp_path)
    assert not (tmp_path / "pricing.typ").exists()


def test_styled_text_may_contain_markup_characters():
    report = Report("Pricing").add_section(Section("Costs").add_block(paragraph(text("Price * 2").weight("bold"))))

    assert report.render_validated().ok


def test_title_markup_overrides_heading_only():
    rendered = Report("A $5 deal").with_title_markup("A \\$5 deal").render_markup()

    assert rendered.startswith('#set document(title: "A $5 deal")\n')
    assert "\n= A \\$5 deal\n" in rendered
