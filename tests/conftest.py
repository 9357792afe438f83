"""
Shared fixtures: an in-memory stand-in for the MongoDB layer,
session tokens and a wired-up TestClient.
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import jwt
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from core.auth import SessionVerifier, get_verifier
from core.config import Settings, reset_settings

JWT_SECRET = "test-secret-key-for-session-tokens-0123456789"

TX_SALARY = "65f0a1b2c3d4e5f601234561"
TX_GROCERIES = "65f0a1b2c3d4e5f601234562"
TX_COFFEE = "65f0a1b2c3d4e5f601234563"
TX_ZERO = "65f0a1b2c3d4e5f601234564"


class InMemoryDatabase:
    """Implements the query methods of core.db.Database over plain lists."""

    def __init__(
        self,
        transactions: List[Dict[str, Any]],
        profiles: List[Dict[str, Any]],
        withdrawals: List[Dict[str, Any]],
    ):
        self.transactions = transactions
        self.profiles = profiles
        self.withdrawals = withdrawals
        self.profile_queries: List[List[str]] = []

    def ping(self) -> None:
        return None

    def find_transactions(self, skip: int, limit: int) -> List[Dict[str, Any]]:
        ordered = sorted(self.transactions, key=lambda d: d["createdAt"], reverse=True)
        return [dict(d) for d in ordered[skip:skip + limit]]

    def count_transactions(self) -> int:
        return len(self.transactions)

    def find_transaction(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        if not ObjectId.is_valid(transaction_id):
            return None
        for doc in self.transactions:
            if doc["_id"] == ObjectId(transaction_id):
                return dict(doc)
        return None

    def find_profiles(self, clerk_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = list(clerk_ids)
        self.profile_queries.append(ids)
        return [dict(p) for p in self.profiles if p["clerkId"] in ids]

    def find_profile(self, clerk_id: str) -> Optional[Dict[str, Any]]:
        return next((dict(p) for p in self.profiles if p["clerkId"] == clerk_id), None)

    def find_withdrawal(self, clerk_id: str) -> Optional[Dict[str, Any]]:
        return next((dict(w) for w in self.withdrawals if w["clerkId"] == clerk_id), None)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_settings():
    """Every test starts from default settings."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fake_db() -> InMemoryDatabase:
    return InMemoryDatabase(
        transactions=[
            {
                "_id": ObjectId(TX_SALARY),
                "clerkId": "user_alice",
                "amount": "150.00",
                "createdAt": utc(2024, 3, 2, 10, 0, 0),
                "description": "Salary",
            },
            {
                "_id": ObjectId(TX_GROCERIES),
                "clerkId": "user_bob",
                "amount": "-45.50",
                "createdAt": utc(2024, 3, 1, 15, 30, 0),
            },
            {
                "_id": ObjectId(TX_COFFEE),
                "clerkId": "user_alice",
                "amount": "-20",
                "createdAt": utc(2024, 3, 1, 9, 0, 0),
            },
            {
                "_id": ObjectId(TX_ZERO),
                "clerkId": "user_carol",
                "amount": "0",
                "createdAt": utc(2024, 2, 28, 12, 0, 0),
            },
        ],
        profiles=[
            {"clerkId": "user_alice", "firstName": "Alice", "lastName": "Smith"},
            {"clerkId": "user_bob", "firstName": "Bob", "lastName": "Jones"},
        ],
        withdrawals=[
            {"clerkId": "user_alice", "amount": "1250.75"},
            {"clerkId": "user_bob", "amount": 300},
        ],
    )


@pytest.fixture
def auth_settings() -> Settings:
    return Settings(AUTH_ENABLED=True, AUTH_JWT_SECRET=JWT_SECRET)


def make_token(sub: Optional[str] = "user_alice", secret: str = JWT_SECRET, **claims) -> str:
    payload: Dict[str, Any] = {"iat": int(time.time()), "exp": int(time.time()) + 3600}
    if sub is not None:
        payload["sub"] = sub
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def client(fake_db, auth_settings):
    """TestClient with the in-memory database and shared-secret verification."""
    from app.api import app, get_account_service, get_receipt_service
    from services.account_service import AccountService
    from services.receipt_service import ReceiptService

    verifier = SessionVerifier(auth_settings)
    app.dependency_overrides[get_verifier] = lambda: verifier
    app.dependency_overrides[get_receipt_service] = lambda: ReceiptService(db=fake_db)
    app.dependency_overrides[get_account_service] = lambda: AccountService(db=fake_db)

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}
