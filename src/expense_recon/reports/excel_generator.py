"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.records import (
    CommitReport,
    Expense,
    MatchCandidate,
    ReconciliationSummary,
    Transaction,
)
from ..config import ReconConfig
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
REVIEW_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
FAILED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets

    def generate_report(
        self,
        summary: ReconciliationSummary,
        candidates: list[MatchCandidate],
        transactions: list[Transaction],
        expenses: list[Expense],
        output_path: Path,
        commit_report: Optional[CommitReport] = None,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            summary: Run summary
            candidates: Ranked, tagged candidates
            transactions: Transactions referenced by the candidates
            expenses: Expenses referenced by the candidates
            output_path: Path for output file
            commit_report: Outcome of the automatic path, if it ran

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        transactions_by_id = {t.id: t for t in transactions}
        expenses_by_id = {e.id: e for e in expenses}

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config

        if sheets.summary.enabled:
            self._create_summary_sheet(wb, summary)

        if sheets.candidates.enabled:
            self._create_candidates_sheet(
                wb, sheets.candidates.name, candidates, transactions_by_id, expenses_by_id
            )

        if sheets.manual_review.enabled:
            manual = [c for c in candidates if not c.auto_match]
            self._create_candidates_sheet(
                wb, sheets.manual_review.name, manual, transactions_by_id, expenses_by_id
            )

        if sheets.commit_results.enabled and commit_report is not None:
            self._create_commit_sheet(wb, commit_report)

        if sheets.skipped_records.enabled and summary.skipped_records:
            self._create_skipped_sheet(wb, summary)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to write report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Expense Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        rows: list[tuple[str, object]] = [
            ("Reconciliation Date:", summary.reconciliation_date.strftime("%Y-%m-%d %H:%M:%S")),
            ("Config File:", summary.config_file_used or "Default"),
            ("", ""),
            ("Total Transactions:", summary.total_transactions),
            ("Total Expenses:", summary.total_expenses),
            ("Open Transactions:", summary.open_transactions),
            ("Open Expenses:", summary.open_expenses),
            ("Skipped Records:", len(summary.skipped_records)),
            ("", ""),
            ("Candidates:", summary.candidate_count),
            ("Automatic Matches:", summary.auto_match_count),
            ("Manual Review:", summary.manual_review_count),
            ("Auto Match Rate:", f"{summary.auto_match_rate:.1f}%"),
            ("Minimum Score:", summary.min_score_threshold),
            ("Auto Threshold:", summary.auto_reconcile_threshold),
        ]

        if summary.committed_count is not None:
            rows.extend(
                [
                    ("", ""),
                    ("Committed:", summary.committed_count),
                    ("Failed Commits:", summary.failed_count),
                ]
            )

        rows.append(("Processing Time:", f"{summary.processing_time_seconds:.2f}s"))

        for i, (label, value) in enumerate(rows, start=3):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 30

    def _create_candidates_sheet(
        self,
        wb: Workbook,
        sheet_name: str,
        candidates: list[MatchCandidate],
        transactions_by_id: dict[str, Transaction],
        expenses_by_id: dict[str, Expense],
    ) -> None:
        """Create a sheet listing candidates with both sides of the pair."""
        ws = wb.create_sheet(sheet_name)

        headers = [
            "Transaction ID",
            "Transaction Date",
            "Transaction Amount",
            "Transaction Description",
            "Expense ID",
            "Expense Date",
            "Expense Amount",
            "Supplier",
            "Expense Description",
            "Score",
            "Automatic",
            "Superseded",
            "Reasons",
        ]
        self._write_headers(ws, headers)

        for row_num, candidate in enumerate(candidates, start=2):
            txn = transactions_by_id.get(candidate.transaction_id)
            exp = expenses_by_id.get(candidate.expense_id)

            row_data = [
                candidate.transaction_id,
                txn.date if txn else "",
                float(txn.amount) if txn else "",
                txn.description if txn else "",
                candidate.expense_id,
                exp.date if exp else "",
                float(exp.amount) if exp else "",
                (exp.supplier_name or "") if exp else "",
                exp.description if exp else "",
                candidate.score,
                "Yes" if candidate.auto_match else "No",
                "Yes" if candidate.superseded else "No",
                ", ".join(candidate.reasons),
            ]

            fill = MATCH_FILL if candidate.auto_match else REVIEW_FILL
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill

        self._auto_fit_columns(ws)

    def _create_commit_sheet(self, wb: Workbook, report: CommitReport) -> None:
        """Create the commit results sheet."""
        ws = wb.create_sheet(self.sheet_config.commit_results.name)

        headers = ["Status", "Transaction ID", "Expense ID", "Score", "Detail", "Timestamp"]
        self._write_headers(ws, headers)

        row = 2
        for record in report.succeeded:
            self._write_row(
                ws,
                row,
                [
                    "Committed",
                    record.transaction_id,
                    record.expense_id,
                    record.score,
                    record.note or "",
                    record.committed_at.strftime("%Y-%m-%d %H:%M:%S"),
                ],
                MATCH_FILL,
            )
            row += 1

        for failure in report.failed:
            self._write_row(
                ws,
                row,
                [
                    "Failed",
                    failure.transaction_id,
                    failure.expense_id,
                    failure.score,
                    f"{failure.error_type}: {failure.error}",
                    "",
                ],
                FAILED_FILL,
            )
            row += 1

        for candidate in report.skipped:
            self._write_row(
                ws,
                row,
                ["Not attempted", candidate.transaction_id, candidate.expense_id, candidate.score, "", ""],
                REVIEW_FILL,
            )
            row += 1

        self._auto_fit_columns(ws)

    def _create_skipped_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the skipped records sheet."""
        ws = wb.create_sheet(self.sheet_config.skipped_records.name)
        self._write_headers(ws, ["Record Type", "Record ID", "Reason"])

        for row_num, skipped in enumerate(summary.skipped_records, start=2):
            self._write_row(
                ws,
                row_num,
                [skipped.record_type, skipped.record_id, skipped.reason],
                FAILED_FILL,
            )

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_row(self, ws: Worksheet, row: int, values: list, fill: PatternFill) -> None:
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            cell.fill = fill

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)


def default_report_path(config: ReconConfig, now: Optional[datetime] = None) -> Path:
    """Build the report file name from the configured template."""
    now = now or datetime.now()
    template = config.output.excel.filename_template
    if not config.output.excel.include_timestamp:
        return Path(template.replace("_{date}", "").replace("_{time}", "").format(date="", time=""))
    return Path(template.format(date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")))
