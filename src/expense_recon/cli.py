"""
Command-line interface for the expense reconciliation engine.
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .ledger.store import InMemoryReconciliationStore
from .matching.categorizer import KeywordCategorizer
from .matching.engine import ReconciliationEngine
from .models.records import (
    CommitReport,
    Expense,
    MatchCandidate,
    ReconciliationSummary,
    SkippedRecord,
    Transaction,
)
from .parsers.records_parser import RecordsParser
from .reports.excel_generator import ExcelReportGenerator, default_report_path
from .reports.links_export import export_links
from .utils.exceptions import ReconciliationError
from .utils.logging_config import level_from_name, setup_logging

console = Console()

MAX_ROWS = 50


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank Transaction to Expense Reconciliation Tool."""
    pass


def _common_options(func):
    """Options shared by the matching commands."""
    func = click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")(func)
    func = click.option(
        "-o", "--output", type=click.Path(path_type=Path), help="Output Excel report file or directory"
    )(func)
    func = click.option("--project", default=None, help="Only match expenses of this project")(
        func
    )
    func = click.option(
        "--auto-threshold", type=int, default=None, help="Override the automatic threshold"
    )(func)
    func = click.option(
        "--min-score", type=int, default=None, help="Override the minimum suggestion score"
    )(func)
    func = click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, path_type=Path),
        help="Path to configuration file (YAML)",
    )(func)
    func = click.argument("expenses_file", type=click.Path(exists=True, path_type=Path))(func)
    func = click.argument("transactions_file", type=click.Path(exists=True, path_type=Path))(
        func
    )
    return func


@main.command()
@_common_options
@click.option("--search", default=None, help="Only show candidates matching this text")
def suggest(
    transactions_file: Path,
    expenses_file: Path,
    config: Optional[Path],
    min_score: Optional[int],
    auto_threshold: Optional[int],
    project: Optional[str],
    output: Optional[Path],
    verbose: bool,
    search: Optional[str],
):
    """
    Show ranked match suggestions without committing anything.

    TRANSACTIONS_FILE: CSV of normalized bank transactions
    EXPENSES_FILE: CSV of recorded expenses
    """
    try:
        recon_config = _load(config, verbose)

        start_time = datetime.now()
        transactions, expenses, parse_skipped = _parse_records(
            recon_config, transactions_file, expenses_file
        )

        engine = ReconciliationEngine(recon_config)
        batch = engine.suggest_batch(
            transactions,
            expenses,
            min_score=min_score,
            auto_threshold=auto_threshold,
            project_id=project,
        )
        if search:
            batch = replace(
                batch,
                candidates=engine.search_candidates(
                    batch.candidates, search, transactions, expenses
                ),
            )
        candidates = batch.candidates

        summary = engine.generate_summary(
            transactions,
            expenses,
            batch,
            processing_time=(datetime.now() - start_time).total_seconds(),
            auto_threshold=auto_threshold,
            min_score=min_score,
        )
        summary.skipped_records = parse_skipped + summary.skipped_records

        _display_candidates(candidates, transactions, expenses)
        _display_summary(summary)
        _display_skipped(summary.skipped_records)

        if output:
            report_path = ExcelReportGenerator(recon_config).generate_report(
                summary, candidates, transactions, expenses, _report_path(recon_config, output)
            )
            console.print(f"\n[green]Report generated: {report_path}[/green]")

    except ReconciliationError as e:
        _fail(e, verbose)


@main.command("auto-reconcile")
@_common_options
@click.option(
    "--export-links",
    "export_links_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Write committed links to this CSV file",
)
def auto_reconcile(
    transactions_file: Path,
    expenses_file: Path,
    config: Optional[Path],
    min_score: Optional[int],
    auto_threshold: Optional[int],
    project: Optional[str],
    output: Optional[Path],
    verbose: bool,
    export_links_path: Optional[Path],
):
    """
    Commit every automatic match and report the outcome.

    TRANSACTIONS_FILE: CSV of normalized bank transactions
    EXPENSES_FILE: CSV of recorded expenses
    """
    try:
        recon_config = _load(config, verbose)

        start_time = datetime.now()
        transactions, expenses, parse_skipped = _parse_records(
            recon_config, transactions_file, expenses_file
        )

        store = InMemoryReconciliationStore(transactions, expenses)
        engine = ReconciliationEngine(recon_config, store=store)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Reconciling...", total=None)
            batch = engine.suggest_batch(
                transactions,
                expenses,
                min_score=min_score,
                auto_threshold=auto_threshold,
                project_id=project,
            )
            report = engine.auto_reconcile(
                auto_threshold=auto_threshold,
                min_score=min_score,
                project_id=project,
            )
            progress.update(task, completed=True)

        candidates = batch.candidates
        summary = engine.generate_summary(
            transactions,
            expenses,
            batch,
            processing_time=(datetime.now() - start_time).total_seconds(),
            report=report,
            auto_threshold=auto_threshold,
            min_score=min_score,
        )
        summary.skipped_records = parse_skipped + summary.skipped_records

        _display_commit_report(report)
        _display_summary(summary)
        _display_skipped(summary.skipped_records)

        if export_links_path:
            export_links(report.succeeded, export_links_path)
            console.print(f"\n[green]Links exported: {export_links_path}[/green]")

        if output:
            report_path = ExcelReportGenerator(recon_config).generate_report(
                summary,
                candidates,
                transactions,
                expenses,
                _report_path(recon_config, output),
                commit_report=report,
            )
            console.print(f"\n[green]Report generated: {report_path}[/green]")

    except ReconciliationError as e:
        _fail(e, verbose)


@main.command()
@click.argument("transactions_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def categorize(transactions_file: Path, config: Optional[Path]):
    """
    Suggest categories for transactions using the keyword rules.

    TRANSACTIONS_FILE: CSV of normalized bank transactions
    """
    try:
        recon_config = load_config(config)
        transactions, _ = RecordsParser(recon_config).parse_transactions(transactions_file)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    categorizer = KeywordCategorizer.from_config(recon_config.categorization)

    table = Table(title=f"Category Suggestions: {transactions_file.name}")
    table.add_column("ID")
    table.add_column("Description")
    table.add_column("Current")
    table.add_column("Suggested")
    table.add_column("Confidence", justify="right")

    for txn in transactions[:MAX_ROWS]:
        text = " ".join(filter(None, [txn.description, txn.counterpart_name]))
        category, confidence = categorizer(text)
        table.add_row(
            txn.id,
            _truncate(txn.description),
            txn.category or "-",
            category,
            f"{confidence:.0%}",
        )

    console.print(table)
    if len(transactions) > MAX_ROWS:
        console.print(f"\n... and {len(transactions) - MAX_ROWS} more transactions")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _load(config_path: Optional[Path], verbose: bool) -> ReconConfig:
    """Load configuration and set up logging from it."""
    recon_config = load_config(config_path)
    log_settings = recon_config.logging
    level = logging.DEBUG if verbose else level_from_name(log_settings.level)
    setup_logging(
        level,
        log_file=Path(log_settings.log_file) if log_settings.log_file else None,
        log_format=log_settings.format,
    )
    return recon_config


def _parse_records(
    config: ReconConfig, transactions_file: Path, expenses_file: Path
) -> tuple[list[Transaction], list[Expense], list[SkippedRecord]]:
    parser = RecordsParser(config)
    transactions, skipped_transactions = parser.parse_transactions(transactions_file)
    expenses, skipped_expenses = parser.parse_expenses(expenses_file)
    return transactions, expenses, skipped_transactions + skipped_expenses


def _report_path(config: ReconConfig, output: Path) -> Path:
    """Use the configured file name when the output is a directory."""
    if output.is_dir():
        return output / default_report_path(config)
    return output


def _fail(error: Exception, verbose: bool) -> None:
    console.print(f"[red]Error: {error}[/red]")
    if verbose:
        console.print_exception()
    sys.exit(1)


def _truncate(text: str, width: int = 40) -> str:
    return text[:width] + "..." if len(text) > width else text


def _display_candidates(
    candidates: list[MatchCandidate],
    transactions: list[Transaction],
    expenses: list[Expense],
) -> None:
    """Display ranked candidates in console."""
    transactions_by_id = {t.id: t for t in transactions}
    expenses_by_id = {e.id: e for e in expenses}

    table = Table(title="Match Suggestions")
    table.add_column("Score", justify="right")
    table.add_column("Mode")
    table.add_column("Transaction")
    table.add_column("Amount", justify="right")
    table.add_column("Expense")
    table.add_column("Supplier")
    table.add_column("Reasons")

    for candidate in candidates[:MAX_ROWS]:
        txn = transactions_by_id.get(candidate.transaction_id)
        exp = expenses_by_id.get(candidate.expense_id)
        if candidate.auto_match:
            mode = "[green]auto[/green]"
        elif candidate.superseded:
            mode = "[dim]superseded[/dim]"
        else:
            mode = "[yellow]manual[/yellow]"

        table.add_row(
            str(candidate.score),
            mode,
            f"{candidate.transaction_id} {_truncate(txn.description, 30) if txn else ''}",
            f"{txn.amount:,.2f} {txn.currency}" if txn else "-",
            candidate.expense_id,
            (exp.supplier_name or "-") if exp else "-",
            ", ".join(candidate.reasons),
        )

    console.print(table)
    if len(candidates) > MAX_ROWS:
        console.print(f"\n... and {len(candidates) - MAX_ROWS} more candidates")


def _display_commit_report(report: CommitReport) -> None:
    """Display the outcome of an automatic run."""
    table = Table(title="Auto-Reconciliation Results")
    table.add_column("Status")
    table.add_column("Transaction")
    table.add_column("Expense")
    table.add_column("Score", justify="right")
    table.add_column("Detail")

    for record in report.succeeded:
        table.add_row(
            "[green]committed[/green]",
            record.transaction_id,
            record.expense_id,
            str(record.score),
            record.note or "",
        )
    for failure in report.failed:
        table.add_row(
            "[red]failed[/red]",
            failure.transaction_id,
            failure.expense_id,
            str(failure.score),
            f"{failure.error_type}: {failure.error}",
        )

    console.print(table)


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Transactions", str(summary.total_transactions))
    table.add_row("Total Expenses", str(summary.total_expenses))
    table.add_row("Open Transactions", str(summary.open_transactions))
    table.add_row("Open Expenses", str(summary.open_expenses))
    table.add_row("Candidates", str(summary.candidate_count))
    table.add_row("Automatic Matches", str(summary.auto_match_count))
    table.add_row("Manual Review", str(summary.manual_review_count))
    table.add_row("Auto Threshold", str(summary.auto_reconcile_threshold))
    table.add_row("Minimum Score", str(summary.min_score_threshold))
    if summary.committed_count is not None:
        table.add_row("Committed", str(summary.committed_count))
        table.add_row("Failed Commits", str(summary.failed_count))
    table.add_row("Skipped Records", str(len(summary.skipped_records)))
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


def _display_skipped(skipped: list[SkippedRecord]) -> None:
    if not skipped:
        return
    console.print(f"\n[yellow]{len(skipped)} records skipped:[/yellow]")
    for record in skipped[:MAX_ROWS]:
        console.print(f"  {record.record_type} {record.record_id}: {record.reason}")


if __name__ == "__main__":
    main()
