"""
Pydantic schemas for request/response validation.
Field aliases follow the document store's camelCase field names.
"""
from datetime import date, datetime
from decimal import Decimal
from math import ceil
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer

from core.normalize import (
    TransactionType,
    classify_amount,
    format_signed_amount,
    receipt_number,
    to_iso_utc,
)


def normalize_object_id(v):
    """Render ObjectId (or any id type) as its string form."""
    if v is None:
        return v
    return str(v)


def normalize_amount(v):
    """Amounts are kept as strings; numbers stored by older writers are converted."""
    if v is None:
        return "0"
    return str(v)


def normalize_name(v):
    """Missing profile names render as empty strings."""
    return v or ""


class Transaction(BaseModel):
    """A transaction history record joined with its owner's display name."""

    model_config = ConfigDict(populate_by_name=True)

    id: Annotated[str, BeforeValidator(normalize_object_id)] = Field(..., alias="_id")
    clerk_id: str = Field(..., alias="clerkId")
    first_name: Annotated[str, BeforeValidator(normalize_name)] = Field(default="", alias="firstName")
    last_name: Annotated[str, BeforeValidator(normalize_name)] = Field(default="", alias="lastName")
    amount: Annotated[str, BeforeValidator(normalize_amount)]
    created_at: datetime = Field(..., alias="createdAt")
    description: Optional[str] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return to_iso_utc(value)

    @property
    def transaction_type(self) -> TransactionType:
        return classify_amount(self.amount)

    @property
    def is_credit(self) -> bool:
        return self.transaction_type == "credit"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def receipt_number(self) -> str:
        return receipt_number(self.id)

    @property
    def signed_amount(self) -> str:
        return format_signed_amount(self.amount)

    @classmethod
    def from_document(
        cls,
        doc: Dict[str, Any],
        profile: Optional[Dict[str, Any]] = None
    ) -> "Transaction":
        """
        Build a transaction from a history document and its owner's KYC profile.

        Args:
            doc: Raw history document
            profile: KYC profile document, if one exists

        Returns:
            Transaction with names resolved
        """
        profile = profile or {}
        return cls(
            _id=doc["_id"],
            clerkId=doc.get("clerkId") or "",
            firstName=profile.get("firstName"),
            lastName=profile.get("lastName"),
            amount=doc.get("amount"),
            createdAt=doc["createdAt"],
            description=doc.get("description"),
        )


class Pagination(BaseModel):
    """Pagination block returned alongside a page of receipts."""

    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(..., alias="currentPage")
    total_pages: int = Field(..., alias="totalPages")
    total_transactions: int = Field(..., alias="totalTransactions")
    has_more: bool = Field(..., alias="hasMore")

    @classmethod
    def build(cls, page: int, limit: int, total: int, returned: int) -> "Pagination":
        skip = (page - 1) * limit
        return cls(
            currentPage=page,
            totalPages=ceil(total / limit),
            totalTransactions=total,
            hasMore=skip + returned < total,
        )


class ReceiptsResponse(BaseModel):
    transactions: List[Transaction]
    pagination: Pagination


class ReceiptResponse(BaseModel):
    transaction: Transaction


class ReceiptLookupRequest(BaseModel):
    """Body of the single-receipt lookup."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: Optional[str] = Field(default=None, alias="transactionId")


class BalanceResponse(BaseModel):
    amount: str


class ErrorResponse(BaseModel):
    error: str


class ReceiptFilter(BaseModel):
    """Criteria applied to a fetched page of receipts."""

    search: Optional[str] = None
    type: Literal["all", "credit", "debit"] = "all"
    on_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return bool(self.search) or self.type != "all" or self.on_date is not None


class ReceiptStats(BaseModel):
    """Summary cards shown above the receipts table."""

    total: int = 0
    credit: int = 0
    debit: int = 0
    total_amount: Decimal = Decimal("0")
