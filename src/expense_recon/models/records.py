"""Data models for bank transactions, expenses and reconciliation results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from ..utils.exceptions import ValidationError


class ApprovalState(Enum):
    """Approval state of a recorded expense."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _coerce_date(value: Any) -> Any:
    """Reduce datetime values (including pandas Timestamps) to their calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _coerce_amount(value: Any) -> Any:
    """Convert int/float/str amounts to Decimal, leaving anything else as-is."""
    if isinstance(value, Decimal) or value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float, str)):
        try:
            return Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return value
    return value


def _check_common(record_type: str, record_id: Any, record_date: Any, amount: Any) -> None:
    """Shared checks for the mandatory id, date and amount fields."""
    if not record_id or not str(record_id).strip():
        raise ValidationError(f"{record_type} is missing an id")
    # A datetime here is NaT or was assigned after construction
    if not isinstance(record_date, date) or isinstance(record_date, datetime):
        raise ValidationError(
            f"{record_type} {record_id}: unparseable date {record_date!r}"
        )
    if not isinstance(amount, Decimal) or not amount.is_finite():
        raise ValidationError(f"{record_type} {record_id}: missing or invalid amount {amount!r}")


@dataclass
class Transaction:
    """
    A single bank ledger entry.

    Created by statement ingestion. Only the committer sets the
    reconciliation fields.
    """

    id: str

    # Booking date
    date: date

    # Signed amount (negative for money out)
    amount: Decimal

    currency: str = "EUR"
    description: str = ""
    counterpart_name: Optional[str] = None
    reference_number: Optional[str] = None
    category: Optional[str] = None
    project_id: Optional[str] = None

    # Reconciliation state
    reconciled: bool = False
    expense_id: Optional[str] = None
    confidence: Optional[float] = None  # score / 100
    note: Optional[str] = None
    reconciled_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.date = _coerce_date(self.date)
        self.amount = _coerce_amount(self.amount)
        if self.description is None:
            self.description = ""

    def validate(self) -> None:
        """
        Check the mandatory fields.

        Raises:
            ValidationError: If id, date or amount is missing or malformed
        """
        _check_common("Transaction", self.id, self.date, self.amount)


@dataclass
class Expense:
    """A recorded project cost."""

    id: str
    date: date
    amount: Decimal
    description: str = ""
    supplier_name: Optional[str] = None
    receipt_number: Optional[str] = None
    category: Optional[str] = None
    approval_state: ApprovalState = ApprovalState.PENDING
    project_id: Optional[str] = None

    # Back-reference written by the committer
    reconciled_transaction_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.date = _coerce_date(self.date)
        self.amount = _coerce_amount(self.amount)
        if self.description is None:
            self.description = ""
        if isinstance(self.approval_state, str):
            try:
                self.approval_state = ApprovalState(self.approval_state.strip().lower())
            except ValueError:
                # left as-is, reported by validate()
                pass

    @property
    def is_reconciled(self) -> bool:
        return self.reconciled_transaction_id is not None

    def validate(self) -> None:
        """
        Check the mandatory fields.

        Raises:
            ValidationError: If id, date, amount or approval state is malformed
        """
        _check_common("Expense", self.id, self.date, self.amount)
        if not isinstance(self.approval_state, ApprovalState):
            raise ValidationError(
                f"Expense {self.id}: unknown approval state {self.approval_state!r}"
            )


@dataclass
class MatchCandidate:
    """A scored, not yet committed transaction/expense pairing."""

    transaction_id: str
    expense_id: str
    score: int  # 0 to 100
    reasons: list[str] = field(default_factory=list)
    auto_match: bool = False

    # Used for deterministic ordering
    transaction_date: Optional[date] = None

    # Points per scorer, in scoring order
    breakdown: dict[str, int] = field(default_factory=dict)

    # One side already claimed by a higher-ranked automatic match
    superseded: bool = False

    @property
    def pair(self) -> tuple[str, str]:
        return self.transaction_id, self.expense_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "expense_id": self.expense_id,
            "score": self.score,
            "reasons": list(self.reasons),
            "auto_match": self.auto_match,
            "superseded": self.superseded,
            "breakdown": dict(self.breakdown),
        }


@dataclass
class ReconciliationRecord:
    """A committed link between one transaction and one expense."""

    transaction_id: str
    expense_id: str
    score: int
    note: Optional[str] = None
    automatic: bool = False
    committed_at: datetime = field(default_factory=datetime.now)

    @property
    def confidence(self) -> float:
        """Score as the stored 0.0-1.0 fraction."""
        return self.score / 100


@dataclass
class CommitFailure:
    """A commit that was attempted and rejected."""

    transaction_id: str
    expense_id: str
    score: int
    error: str
    error_type: str


@dataclass
class CommitReport:
    """Per-candidate outcome of a bulk commit."""

    succeeded: list[ReconciliationRecord] = field(default_factory=list)
    failed: list[CommitFailure] = field(default_factory=list)

    # Not attempted because the run was cancelled
    skipped: list[MatchCandidate] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def attempted_count(self) -> int:
        return len(self.succeeded) + len(self.failed)


@dataclass
class SkippedRecord:
    """A record excluded from candidate generation."""

    record_type: str  # "transaction" or "expense"
    record_id: str
    reason: str


@dataclass
class ReconciliationSummary:
    """Summary of a reconciliation run."""

    reconciliation_date: datetime

    # Input counts
    total_transactions: int
    total_expenses: int
    open_transactions: int
    open_expenses: int

    # Candidate counts
    candidate_count: int
    auto_match_count: int
    manual_review_count: int

    # Thresholds in effect
    min_score_threshold: int
    auto_reconcile_threshold: int

    skipped_records: list[SkippedRecord] = field(default_factory=list)

    # Present only when the auto path ran
    committed_count: Optional[int] = None
    failed_count: Optional[int] = None

    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def auto_match_rate(self) -> float:
        """Percentage of open transactions with an automatic match."""
        if self.open_transactions == 0:
            return 0.0
        return (self.auto_match_count / self.open_transactions) * 100
