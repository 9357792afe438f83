"""
Identity-provider session verification.
The dashboard never issues credentials; it verifies the session JWT the
identity provider hands to the browser and reads the user id from `sub`.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient

from core.config import Settings, get_settings
from core.exceptions import AuthenticationError, ConfigurationError
from core.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class AuthenticatedUser:
    """The caller behind a verified session token."""
    user_id: str
    claims: Dict[str, Any] = field(default_factory=dict)


class SessionVerifier:
    """Verifies session tokens against a JWKS endpoint or a shared secret."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._jwks_client: Optional[PyJWKClient] = None

    def _signing_key(self, token: str):
        if self.settings.auth_jwks_url:
            if self._jwks_client is None:
                self._jwks_client = PyJWKClient(self.settings.auth_jwks_url)
            return self._jwks_client.get_signing_key_from_jwt(token).key, ["RS256"]
        if self.settings.auth_jwt_secret:
            return self.settings.auth_jwt_secret, ["HS256"]
        raise ConfigurationError(
            "No session verification key configured",
            details={"required_key": "AUTH_JWKS_URL or AUTH_JWT_SECRET"}
        )

    def verify(self, token: str) -> AuthenticatedUser:
        """
        Verify a session token.

        Args:
            token: Encoded JWT

        Returns:
            The authenticated user

        Raises:
            AuthenticationError: If the token is expired, invalid or has no subject
            ConfigurationError: If no verification key is configured
        """
        try:
            key, algorithms = self._signing_key(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                leeway=self.settings.auth_leeway_seconds,
                options={"verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Session expired")
        except jwt.PyJWKClientError as e:
            logger.warning(f"Could not resolve signing key: {e}")
            raise AuthenticationError("Invalid token")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected session token: {e}")
            raise AuthenticationError("Invalid token")

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token")

        parties = self.settings.auth_authorized_parties
        azp = claims.get("azp")
        if parties and azp and azp not in parties:
            logger.warning(f"Rejected token from unauthorized party: {azp}")
            raise AuthenticationError("Invalid token")

        return AuthenticatedUser(user_id=user_id, claims=claims)

    def authenticate(
        self,
        authorization: Optional[str],
        session_cookie: Optional[str]
    ) -> AuthenticatedUser:
        """
        Resolve the caller from request credentials.
        The Authorization header wins over the session cookie.
        """
        if not self.settings.auth_enabled:
            return AuthenticatedUser(user_id=self.settings.auth_dev_user_id)

        token = extract_bearer_token(authorization) or session_cookie
        if not token:
            raise AuthenticationError("Not authenticated")
        return self.verify(token)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a `Bearer <token>` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


_verifier: Optional[SessionVerifier] = None


def get_verifier() -> SessionVerifier:
    global _verifier
    if _verifier is None:
        _verifier = SessionVerifier()
    return _verifier


def reset_verifier() -> None:
    global _verifier
    _verifier = None
