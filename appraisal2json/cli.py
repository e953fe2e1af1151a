"""CLI commands using Typer."""

import json
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from pydantic import ValidationError

from appraisal2json.aggregate import build_rows, row_fields, summarize as summarize_rows
from appraisal2json.config import Settings, load_settings
from appraisal2json.errors import Appraisal2JsonError
from appraisal2json.extractor import StrategyChain
from appraisal2json.health import HealthMonitor
from appraisal2json.logging_config import configure_logging
from appraisal2json.models import ExtractedRecord, SourceCategory
from appraisal2json.output import OutputGenerator
from appraisal2json.parser import read_pdf_text
from appraisal2json.pipeline import ingest_source, records_for_page
from appraisal2json.store import DirectoryDocumentSource, JsonlRecordStore, RecordQuery
from appraisal2json.values import find_value_observations

app = typer.Typer(help="Appraisal decisions to JSON")


def _settings() -> Settings:
    try:
        settings = load_settings()
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: invalid APPRAISAL_* setting: {e}", err=True)
        raise typer.Exit(code=2)
    configure_logging(settings.log_level)
    return settings


def _chain(settings: Settings, store=None) -> StrategyChain:
    return StrategyChain(
        health=HealthMonitor(threshold=settings.alert_threshold, debounce=settings.alert_debounce),
        min_document_length=settings.min_document_length,
        store=store,
    )


def _read_file(path: str) -> str:
    file = Path(path)
    if not file.exists():
        typer.echo(f"Error: file not found: {path}", err=True)
        raise typer.Exit(code=1)
    return file.read_text(encoding="utf-8")


@app.command("parse-page")
def parse_page(
    html_path: str = typer.Argument(..., help="Saved listing page"),
    source: SourceCategory = typer.Option(SourceCategory.DECISIVE_APPRAISER, "--source", "-s"),
    page: Optional[int] = typer.Option(None, "--page", "-p", help="Page index, enables the stored fallback"),
    store_path: Optional[str] = typer.Option(None, "--store", help="JSONL record store"),
    out: str = typer.Option("out", "--out", "-o", help="Output directory"),
):
    """Extract decision records from one saved listing page."""
    settings = _settings()
    store = JsonlRecordStore(store_path) if store_path else None
    chain = _chain(settings, store)

    records = records_for_page(chain, _read_file(html_path), source, page)
    if not records:
        typer.echo("[FAIL] No decisions found by any strategy", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"[OK] {len(records)} decisions via {chain.last_strategy_used}")
    path = OutputGenerator(out).write_records(records, name=Path(html_path).stem)
    typer.echo(f"[OK] Records JSON: {path}")


@app.command()
def check(
    html_path: str = typer.Argument(..., help="Saved listing page"),
    source: SourceCategory = typer.Option(SourceCategory.DECISIVE_APPRAISER, "--source", "-s"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Also write the report as JSON"),
):
    """Report which extraction strategies work against a page."""
    settings = _settings()
    report = _chain(settings).check_strategies(_read_file(html_path), source)

    for name, result in report.strategies.items():
        status = "[OK]" if result.working else "[FAIL]"
        detail = f"{result.item_count} items" if result.working else (result.error or "no items")
        typer.echo(f"  {status} {name}: {detail}")
    if report.recommended_strategy:
        typer.echo(f"Recommended: {report.recommended_strategy}")
    for warning in report.warnings:
        typer.echo(f"⚠ {warning}")
    if out:
        typer.echo(f"[OK] Report: {OutputGenerator(out).write_health_report(report)}")
    if not report.healthy:
        raise typer.Exit(code=1)


@app.command()
def ingest(
    source: SourceCategory = typer.Argument(..., help="Collection to ingest"),
    pages_dir: str = typer.Option(..., "--pages", help="Directory of <source>/<page>.html files"),
    store_path: str = typer.Option("records.jsonl", "--store", help="JSONL record store"),
    start_page: int = typer.Option(0, "--start-page"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages"),
    delay: Optional[float] = typer.Option(None, "--delay", help="Seconds between pages"),
):
    """Ingest saved listing pages of one source into the record store."""
    settings = _settings()
    store = JsonlRecordStore(store_path)
    chain = _chain(settings, store)

    report = ingest_source(
        source,
        DirectoryDocumentSource(pages_dir),
        chain,
        store,
        start_page=start_page,
        max_pages=max_pages or settings.max_pages,
        max_empty_pages=settings.max_empty_pages,
        delay_seconds=settings.request_delay_seconds if delay is None else delay,
    )

    typer.echo(f"[OK] {report.records_inserted} new of {report.records_found} found "
               f"over {report.pages_attempted} pages ({report.stopped_reason})")
    for name, count in report.strategy_counts.items():
        typer.echo(f"  {name}: {count} pages")
    if chain.health.alerted:
        typer.echo(f"⚠ {chain.health.last_alert.message}", err=True)
    if report.records_found == 0:
        raise typer.Exit(code=1)


@app.command("extract-values")
def extract_values(
    document_path: str = typer.Argument(..., help="Decision PDF or text file"),
    term: str = typer.Argument(..., help="Search term, e.g. 'מקדם דחייה'"),
    window: Optional[int] = typer.Option(None, "--window", "-w", help="Characters after the term"),
    clean: bool = typer.Option(False, "--clean", help="Drop repeated PDF headers and footers"),
):
    """Print values found after each occurrence of a term."""
    settings = _settings()
    path = Path(document_path)
    if not path.exists():
        typer.echo(f"Error: file not found: {document_path}", err=True)
        raise typer.Exit(code=1)
    try:
        text = read_pdf_text(path, clean=clean) if path.suffix.lower() == ".pdf" else path.read_text(encoding="utf-8")
    except Appraisal2JsonError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    observations = find_value_observations(text, term, window or settings.value_window)
    typer.echo(json.dumps([o.model_dump() for o in observations], ensure_ascii=False, indent=2))
    if not observations:
        raise typer.Exit(code=1)


def _document_text(texts_dir: Path, record: ExtractedRecord, clean: bool = False) -> Optional[str]:
    txt = texts_dir / f"{record.id}.txt"
    if txt.exists():
        return txt.read_text(encoding="utf-8")
    pdf = texts_dir / f"{record.id}.pdf"
    if pdf.exists():
        try:
            return read_pdf_text(pdf, clean=clean)
        except Appraisal2JsonError as e:
            typer.echo(f"  [FAIL] {record.id}: {e}", err=True)
    return None


@app.command()
def summarize(
    term: str = typer.Argument(..., help="Search term, e.g. 'מקדם דחייה'"),
    store_path: str = typer.Option("records.jsonl", "--store", help="JSONL record store"),
    texts_dir: str = typer.Option(..., "--texts", help="Directory of <record id>.txt/.pdf documents"),
    source: Optional[SourceCategory] = typer.Option(None, "--source", "-s"),
    committee: Optional[str] = typer.Option(None, "--committee"),
    case_type: Optional[str] = typer.Option(None, "--case-type"),
    year: Optional[str] = typer.Option(None, "--year"),
    field: str = typer.Option("value", "--field", help="Name of the value column"),
    preview_limit: Optional[int] = typer.Option(None, "--preview-limit"),
    clean: bool = typer.Option(False, "--clean", help="Drop repeated PDF headers and footers"),
    out: str = typer.Option("out", "--out", "-o", help="Output directory"),
):
    """Compare a value across stored decisions and write a summary."""
    settings = _settings()
    store = JsonlRecordStore(store_path)
    records = store.query(RecordQuery(source=source, committee=committee, case_type=case_type, year=year))
    typer.echo(f"Matching decisions: {len(records)}")

    documents: List[Tuple[ExtractedRecord, str]] = []
    for record in records:
        text = _document_text(Path(texts_dir), record, clean)
        if text is not None:
            documents.append((record, text))

    rows = build_rows(documents, term, field)
    summary = summarize_rows(
        rows,
        row_fields(field),
        preview_limit=settings.preview_limit if preview_limit is None else preview_limit,
        top_n=settings.top_actors,
    )

    output_gen = OutputGenerator(out)
    typer.echo(f"[OK] {summary.total} decisions with a value, {summary.shown} shown")
    typer.echo(f"[OK] Summary JSON: {output_gen.write_summary_json(summary)}")
    typer.echo(f"[OK] HTML Report: {output_gen.generate_html_report(summary, title=term)}")


@app.command()
def version():
    """Show version information."""
    from appraisal2json import __version__
    typer.echo(f"appraisal2json version {__version__}")


if __name__ == "__main__":
    app()
