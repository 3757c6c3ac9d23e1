"""CSV export of committed reconciliation links."""

from pathlib import Path
import logging

import pandas as pd

from ..models.records import ReconciliationRecord

logger = logging.getLogger(__name__)

LINK_COLUMNS = [
    "transaction_id",
    "expense_id",
    "score",
    "confidence",
    "automatic",
    "note",
    "committed_at",
]


def export_links(records: list[ReconciliationRecord], output_path: Path) -> Path:
    """
    Write committed links to a CSV file.

    Args:
        records: Committed reconciliation records
        output_path: Destination CSV path

    Returns:
        The written path
    """
    df = pd.DataFrame(
        [
            {
                "transaction_id": r.transaction_id,
                "expense_id": r.expense_id,
                "score": r.score,
                "confidence": r.confidence,
                "automatic": r.automatic,
                "note": r.note or "",
                "committed_at": r.committed_at.isoformat(timespec="seconds"),
            }
            for r in records
        ],
        columns=LINK_COLUMNS,
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    logger.info(f"Exported {len(df)} reconciliation links to {output_path}")
    return output_path
