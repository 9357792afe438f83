"""
MongoDB access layer.
Read-only queries over transaction history, KYC profiles and withdrawal balances.
"""
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient
from pymongo.database import Database as MongoDatabase
from pymongo.errors import PyMongoError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import get_settings
from core.exceptions import DatabaseError
from core.logger import setup_logger

logger = setup_logger(__name__)


class Database:
    """Thin wrapper around the dashboard's MongoDB collections."""

    def __init__(self, client: Optional[MongoClient] = None):
        self.settings = get_settings()
        self._client = client

    @property
    def client(self) -> MongoClient:
        """Lazily create the client; pymongo connects on first operation."""
        if self._client is None:
            self._client = MongoClient(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=self.settings.mongodb_timeout_ms,
                connectTimeoutMS=self.settings.mongodb_timeout_ms,
                tz_aware=True,
            )
            logger.info(f"MongoDB client created for database '{self.settings.mongodb_database}'")
        return self._client

    @property
    def db(self) -> MongoDatabase:
        return self.client[self.settings.mongodb_database]

    @property
    def transactions(self):
        return self.db[self.settings.transactions_collection]

    @property
    def profiles(self):
        return self.db[self.settings.profiles_collection]

    @property
    def withdrawals(self):
        return self.db[self.settings.withdrawals_collection]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(PyMongoError),
        reraise=True
    )
    def _ping(self) -> None:
        self.client.admin.command("ping")

    def ping(self) -> None:
        """
        Check the database is reachable.

        Raises:
            DatabaseError: If the server cannot be reached after retries
        """
        try:
            self._ping()
        except PyMongoError as e:
            logger.error(f"MongoDB ping failed: {e}")
            raise DatabaseError(
                "Database is unreachable",
                details={"database": self.settings.mongodb_database, "error": str(e)}
            )

    def find_transactions(self, skip: int, limit: int) -> List[Dict[str, Any]]:
        """Fetch a page of history documents, newest first."""
        try:
            cursor = (
                self.transactions.find({})
                .sort("createdAt", DESCENDING)
                .skip(skip)
                .limit(limit)
            )
            return list(cursor)
        except PyMongoError as e:
            logger.error(f"Failed to fetch transactions (skip={skip}, limit={limit}): {e}")
            raise DatabaseError("Failed to fetch transactions", details={"error": str(e)})

    def count_transactions(self) -> int:
        """Count all history documents."""
        try:
            return self.transactions.count_documents({})
        except PyMongoError as e:
            logger.error(f"Failed to count transactions: {e}")
            raise DatabaseError("Failed to count transactions", details={"error": str(e)})

    def find_transaction(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a single history document by id.

        Args:
            transaction_id: Hex string of the document's ObjectId

        Returns:
            The document, or None when the id is malformed or unknown
        """
        try:
            oid = ObjectId(transaction_id)
        except (InvalidId, TypeError):
            logger.debug(f"Malformed transaction id: {transaction_id!r}")
            return None

        try:
            return self.transactions.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Failed to fetch transaction {transaction_id}: {e}")
            raise DatabaseError("Failed to fetch transaction", details={"error": str(e)})

    def find_profiles(self, clerk_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Fetch KYC profiles for a set of users."""
        ids = list(clerk_ids)
        if not ids:
            return []
        try:
            return list(self.profiles.find({"clerkId": {"$in": ids}}))
        except PyMongoError as e:
            logger.error(f"Failed to fetch profiles for {len(ids)} users: {e}")
            raise DatabaseError("Failed to fetch profiles", details={"error": str(e)})

    def find_profile(self, clerk_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one user's KYC profile."""
        try:
            return self.profiles.find_one({"clerkId": clerk_id})
        except PyMongoError as e:
            logger.error(f"Failed to fetch profile: {e}")
            raise DatabaseError("Failed to fetch profile", details={"error": str(e)})

    def find_withdrawal(self, clerk_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one user's withdrawal balance record."""
        try:
            return self.withdrawals.find_one({"clerkId": clerk_id})
        except PyMongoError as e:
            logger.error(f"Failed to fetch withdrawal balance: {e}")
            raise DatabaseError("Failed to fetch balance", details={"error": str(e)})

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


# Global DB instance
_db: Optional[Database] = None


def get_db() -> Database:
    global _db
    if _db is None:
        _db = Database()
    return _db


def reset_db() -> None:
    """Close and drop the global instance (useful for testing)."""
    global _db
    if _db is not None:
        _db.close()
    _db = None
