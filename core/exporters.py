"""
CSV and Excel exporters for receipt listings.
Both formats share one DataFrame layout so the columns always agree.
"""
import csv
import io
from datetime import date, tzinfo
from typing import List, Optional

import pandas as pd

from core.exceptions import ExportError
from core.logger import setup_logger
from core.normalize import format_short_datetime
from core.schema import Transaction

logger = setup_logger(__name__)

EXPORT_COLUMNS = [
    "Transaction ID",
    "User ID",
    "Name",
    "Amount",
    "Type",
    "Date",
    "Description",
]

SHEET_NAME = "Receipts"


def build_export_frame(
    transactions: List[Transaction],
    tz: Optional[tzinfo] = None
) -> pd.DataFrame:
    """
    Lay out transactions as export rows.

    Args:
        transactions: Transactions to export, in display order
        tz: Timezone for the Date column

    Returns:
        DataFrame with EXPORT_COLUMNS, every cell a string
    """
    rows = [
        [
            t.id,
            t.clerk_id,
            t.full_name,
            t.amount,
            "Credit" if t.is_credit else "Debit",
            format_short_datetime(t.created_at, tz),
            t.description or "",
        ]
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS, dtype=str)


def export_to_csv(
    transactions: List[Transaction],
    tz: Optional[tzinfo] = None
) -> str:
    """
    Export transactions as CSV text with every cell quoted.

    Raises:
        ExportError: If serialization fails
    """
    logger.info(f"Exporting {len(transactions)} transactions to CSV")
    try:
        df = build_export_frame(transactions, tz)
        content = df.to_csv(
            index=False,
            quoting=csv.QUOTE_ALL,
            lineterminator="\n",
        )
        # Header row is written unquoted, data cells quoted
        _, _, body = content.partition("\n")
        header = ",".join(EXPORT_COLUMNS)
        return f"{header}\n{body}".rstrip("\n")
    except Exception as e:
        logger.error(f"Failed to export CSV: {e}")
        raise ExportError("Failed to export to CSV", details={"error": str(e)})


def export_to_excel(
    transactions: List[Transaction],
    tz: Optional[tzinfo] = None
) -> bytes:
    """
    Export transactions to an in-memory Excel workbook.

    Raises:
        ExportError: If the workbook cannot be written
    """
    logger.info(f"Exporting {len(transactions)} transactions to Excel")
    df = build_export_frame(transactions, tz)
    buffer = io.BytesIO()

    try:
        with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
            df.to_excel(writer, sheet_name=SHEET_NAME, index=False)

            workbook = writer.book
            worksheet = writer.sheets[SHEET_NAME]
            header_format = workbook.add_format({"bold": True, "valign": "top"})

            # Auto-fit columns (approximate)
            for idx, col in enumerate(df.columns):
                values_len = df[col].astype(str).map(len).max() if len(df) else 0
                max_len = max(values_len, len(str(col)))
                worksheet.set_column(idx, idx, min(max_len + 2, 50))
                worksheet.write(0, idx, col, header_format)

        return buffer.getvalue()

    except Exception as e:
        logger.error(f"Failed to export Excel: {e}")
        raise ExportError("Failed to export to Excel", details={"error": str(e)})


def create_export_filename(extension: str, today: Optional[date] = None) -> str:
    """
    Build the download filename for an export.

    Args:
        extension: File extension without the dot ("csv" or "xlsx")
        today: Date stamped into the name (defaults to today)

    Returns:
        Filename like transactions_2024-01-31.csv
    """
    stamp = (today or date.today()).isoformat()
    return f"transactions_{stamp}.{extension}"
