"""
Account service: balance lookup and the dashboard greeting.
"""
from typing import Any, Dict, Optional

from core.db import Database, get_db
from core.logger import setup_logger
from core.schema import BalanceResponse

logger = setup_logger(__name__)


class AccountService:
    """Per-user account information for the signed-in customer."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()

    def get_balance(self, clerk_id: str) -> BalanceResponse:
        """
        Current withdrawable balance of a user.

        Args:
            clerk_id: Identity-provider user id

        Returns:
            Balance with the amount as a string ("0" when no record exists)
        """
        record = self.db.find_withdrawal(clerk_id)
        amount = record.get("amount") if record else None
        if amount is None:
            logger.debug("No withdrawal balance on file, reporting 0")
            amount = "0"
        return BalanceResponse(amount=str(amount))

    def get_display_name(self, clerk_id: str, claims: Optional[Dict[str, Any]] = None) -> str:
        """
        Name used in the dashboard greeting.
        KYC profile first, then session token claims, then the user id.
        """
        profile = self.db.find_profile(clerk_id)
        if profile:
            name = f"{profile.get('firstName') or ''} {profile.get('lastName') or ''}".strip()
            if name:
                return name

        claims = claims or {}
        if claims.get("name"):
            return str(claims["name"])
        name = f"{claims.get('first_name') or ''} {claims.get('last_name') or ''}".strip()
        return name or clerk_id
