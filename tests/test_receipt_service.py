"""
Unit tests for the receipt listing service.
"""
from datetime import date
from decimal import Decimal

import pytest

from conftest import TX_COFFEE, TX_GROCERIES, TX_SALARY, TX_ZERO
from core.exceptions import DataNotFoundError, ValidationError
from core.schema import ReceiptFilter
from services.receipt_service import ReceiptService


@pytest.fixture
def service(fake_db):
    return ReceiptService(db=fake_db)


def test_list_receipts_newest_first_with_names(service):
    """Test page is ordered by createdAt descending and names are joined."""
    result = service.list_receipts(page=1, limit=50)
    ids = [t.id for t in result.transactions]
    assert ids == [TX_SALARY, TX_GROCERIES, TX_COFFEE, TX_ZERO]

    salary = result.transactions[0]
    assert salary.first_name == "Alice"
    assert salary.last_name == "Smith"
    assert salary.description == "Salary"


def test_list_receipts_missing_profile_gives_empty_names(service):
    result = service.list_receipts(page=1, limit=50)
    carol = result.transactions[-1]
    assert carol.clerk_id == "user_carol"
    assert carol.first_name == ""
    assert carol.last_name == ""
    assert carol.full_name == ""


def test_list_receipts_single_profile_query_with_distinct_ids(service, fake_db):
    """Test profiles are fetched once per page for the distinct users."""
    service.list_receipts(page=1, limit=50)
    assert len(fake_db.profile_queries) == 1
    assert sorted(fake_db.profile_queries[0]) == ["user_alice", "user_bob", "user_carol"]


def test_pagination_first_page(service):
    result = service.list_receipts(page=1, limit=3)
    assert len(result.transactions) == 3
    assert result.pagination.current_page == 1
    assert result.pagination.total_pages == 2
    assert result.pagination.total_transactions == 4
    assert result.pagination.has_more is True


def test_pagination_last_page(service):
    result = service.list_receipts(page=2, limit=3)
    assert [t.id for t in result.transactions] == [TX_ZERO]
    assert result.pagination.has_more is False


def test_pagination_past_the_end(service):
    result = service.list_receipts(page=5, limit=3)
    assert result.transactions == []
    assert result.pagination.has_more is False
    assert result.pagination.total_pages == 2


def test_pagination_uses_default_page_size(service):
    result = service.list_receipts()
    assert result.pagination.total_pages == 1


@pytest.mark.parametrize("page,limit", [(0, 10), (-1, 10), (1, 0), (1, 10000)])
def test_list_receipts_rejects_out_of_range(service, page, limit):
    with pytest.raises(ValidationError):
        service.list_receipts(page=page, limit=limit)


def test_get_receipt_resolves_name(service):
    transaction = service.get_receipt(TX_GROCERIES)
    assert transaction.full_name == "Bob Jones"
    assert transaction.amount == "-45.50"
    assert transaction.receipt_number == "RCP-01234562"


def test_get_receipt_requires_id(service):
    with pytest.raises(ValidationError) as exc_info:
        service.get_receipt("")
    assert exc_info.value.message == "Transaction ID is required"


@pytest.mark.parametrize("transaction_id", ["65f0a1b2c3d4e5f6ffffffff", "not-an-object-id"])
def test_get_receipt_not_found(service, transaction_id):
    with pytest.raises(DataNotFoundError) as exc_info:
        service.get_receipt(transaction_id)
    assert exc_info.value.message == "Transaction not found"


def test_filter_by_type(service):
    transactions = service.list_receipts().transactions

    credits = service.filter_receipts(transactions, ReceiptFilter(type="credit"))
    debits = service.filter_receipts(transactions, ReceiptFilter(type="debit"))
    everything = service.filter_receipts(transactions, ReceiptFilter())

    assert [t.id for t in credits] == [TX_SALARY]
    assert [t.id for t in debits] == [TX_GROCERIES, TX_COFFEE]
    assert len(everything) == 4


def test_filter_search_is_case_insensitive(service):
    """Test search matches names, user ids and transaction ids."""
    transactions = service.list_receipts().transactions

    by_name = service.filter_receipts(transactions, ReceiptFilter(search="SMITH"))
    by_user = service.filter_receipts(transactions, ReceiptFilter(search="carol"))
    by_id = service.filter_receipts(transactions, ReceiptFilter(search="34562"))

    assert [t.id for t in by_name] == [TX_SALARY, TX_COFFEE]
    assert [t.id for t in by_user] == [TX_ZERO]
    assert [t.id for t in by_id] == [TX_GROCERIES]


def test_filter_by_date(service):
    transactions = service.list_receipts().transactions
    march_first = service.filter_receipts(transactions, ReceiptFilter(on_date=date(2024, 3, 1)))
    assert [t.id for t in march_first] == [TX_GROCERIES, TX_COFFEE]


def test_filter_by_date_in_display_timezone(service):
    """Test the calendar day is taken in the configured timezone."""
    service.settings.display_timezone = "Asia/Tokyo"
    transactions = service.list_receipts().transactions
    # 15:30 UTC on March 1 is already March 2 in Tokyo
    march_second = service.filter_receipts(transactions, ReceiptFilter(on_date=date(2024, 3, 2)))
    assert [t.id for t in march_second] == [TX_SALARY, TX_GROCERIES]


def test_filters_combine(service):
    transactions = service.list_receipts().transactions
    criteria = ReceiptFilter(search="alice", type="debit", on_date=date(2024, 3, 1))
    assert [t.id for t in service.filter_receipts(transactions, criteria)] == [TX_COFFEE]


def test_calculate_stats(service):
    """Test counts exclude zero amounts and volume sums absolute values."""
    stats = service.calculate_stats(service.list_receipts().transactions)
    assert stats.total == 4
    assert stats.credit == 1
    assert stats.debit == 2
    assert stats.total_amount == Decimal("215.50")


def test_calculate_stats_empty(service):
    stats = service.calculate_stats([])
    assert stats.total == 0
    assert stats.total_amount == Decimal("0")
