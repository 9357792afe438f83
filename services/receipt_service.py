"""
Receipt listing service.
Fetches a page of transaction history, resolves owner names from KYC
profiles, and filters/aggregates the fetched page for display.
"""
from datetime import tzinfo
from decimal import Decimal
from typing import Dict, List, Optional

from core.config import get_settings
from core.db import Database, get_db
from core.exceptions import DataNotFoundError, ValidationError
from core.logger import setup_logger
from core.normalize import matches_type, parse_amount, to_display_date
from core.schema import (
    Pagination,
    ReceiptFilter,
    ReceiptsResponse,
    ReceiptStats,
    Transaction,
)

logger = setup_logger(__name__)


class ReceiptService:
    """Service behind the receipts API and the receipts page."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize receipt service."""
        self.settings = get_settings()
        self.db = db or get_db()

    @property
    def tz(self) -> tzinfo:
        return self.settings.tz

    def build_name_map(self, clerk_ids: List[str]) -> Dict[str, dict]:
        """
        Look up KYC profiles for a set of users in one query.

        Args:
            clerk_ids: User ids to resolve (duplicates allowed)

        Returns:
            Mapping of clerkId to profile document
        """
        unique_ids = list(dict.fromkeys(clerk_ids))
        profiles = self.db.find_profiles(unique_ids)
        return {p["clerkId"]: p for p in profiles if p.get("clerkId")}

    def list_receipts(self, page: int = 1, limit: Optional[int] = None) -> ReceiptsResponse:
        """
        Fetch one page of transactions, newest first, with owner names.

        Args:
            page: 1-based page number
            limit: Page size (defaults to the configured page size)

        Returns:
            Page of transactions plus pagination info

        Raises:
            ValidationError: If page or limit is out of range
        """
        if limit is None:
            limit = self.settings.default_page_size
        if page < 1:
            raise ValidationError("Page must be at least 1", details={"page": page})
        if not (1 <= limit <= self.settings.max_page_size):
            raise ValidationError(
                f"Limit must be between 1 and {self.settings.max_page_size}",
                details={"limit": limit}
            )

        skip = (page - 1) * limit
        docs = self.db.find_transactions(skip=skip, limit=limit)
        total = self.db.count_transactions()

        name_map = self.build_name_map([d.get("clerkId") for d in docs if d.get("clerkId")])
        transactions = [
            Transaction.from_document(doc, name_map.get(doc.get("clerkId")))
            for doc in docs
        ]

        logger.info(
            f"Fetched page {page} ({len(transactions)} of {total} transactions, "
            f"{len(name_map)} profiles resolved)"
        )

        return ReceiptsResponse(
            transactions=transactions,
            pagination=Pagination.build(page, limit, total, len(transactions)),
        )

    def get_receipt(self, transaction_id: Optional[str]) -> Transaction:
        """
        Fetch a single transaction with its owner's name.

        Raises:
            ValidationError: If no id was given
            DataNotFoundError: If the transaction does not exist
        """
        if not transaction_id:
            raise ValidationError("Transaction ID is required")

        doc = self.db.find_transaction(transaction_id)
        if doc is None:
            raise DataNotFoundError(
                "Transaction not found",
                details={"transaction_id": transaction_id}
            )

        profile = self.db.find_profile(doc.get("clerkId")) if doc.get("clerkId") else None
        return Transaction.from_document(doc, profile)

    def filter_receipts(
        self,
        transactions: List[Transaction],
        criteria: ReceiptFilter
    ) -> List[Transaction]:
        """
        Apply type, search and date criteria, keeping the original order.

        Search is a case-insensitive substring match over the transaction id,
        user id, first name and last name. The date matches the calendar day
        in the display timezone.
        """
        filtered = [t for t in transactions if matches_type(t.amount, criteria.type)]

        if criteria.search:
            term = criteria.search.lower()
            filtered = [
                t for t in filtered
                if term in t.id.lower()
                or term in t.clerk_id.lower()
                or term in t.first_name.lower()
                or term in t.last_name.lower()
            ]

        if criteria.on_date:
            filtered = [
                t for t in filtered
                if to_display_date(t.created_at, self.tz) == criteria.on_date
            ]

        return filtered

    def calculate_stats(self, transactions: List[Transaction]) -> ReceiptStats:
        """
        Summarize transactions for the stats cards.
        Total volume is the sum of absolute amounts.
        """
        amounts = [parse_amount(t.amount) for t in transactions]
        return ReceiptStats(
            total=len(amounts),
            credit=sum(1 for a in amounts if a > 0),
            debit=sum(1 for a in amounts if a < 0),
            total_amount=sum((abs(a) for a in amounts), Decimal("0")),
        )
