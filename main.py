"""
Main entry point for the banking dashboard.

This module loads configuration, checks the document store,
and starts the FastAPI server.
"""
import sys
from pathlib import Path

# Add project root to Python path for module imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from core.config import get_settings
from core.exceptions import ConfigurationError, DatabaseError
from core.logger import setup_logger

# Load environment variables from .env file
_env_file = PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    print("Warning: .env file not found. Using environment variables or defaults.")

logger = setup_logger(__name__)


def validate_startup_settings(settings) -> None:
    """
    Refuse to start with an unusable authentication setup.

    Raises:
        ConfigurationError: If auth is enabled without a verification key
    """
    if settings.auth_enabled and not settings.auth_configured:
        raise ConfigurationError(
            "Authentication is enabled but no verification key is configured",
            details={"required_key": "AUTH_JWKS_URL or AUTH_JWT_SECRET"}
        )
    if not settings.auth_enabled:
        logger.warning(
            f"Authentication disabled; all requests run as '{settings.auth_dev_user_id}'"
        )


def main():
    """Main application entry point."""
    try:
        settings = get_settings()
        validate_startup_settings(settings)

        import uvicorn
        from app.api import app
        from core.db import get_db

        logger.info(f"Starting {settings.app_name}")
        logger.info(f"MongoDB Database: {settings.mongodb_database}")
        logger.info(f"Log Level: {settings.log_level}")
        logger.info(f"Display Timezone: {settings.display_timezone}")
        logger.info(f"Page Size: {settings.default_page_size} (max {settings.max_page_size})")
        logger.info(
            "Session verification: "
            + ("JWKS" if settings.auth_jwks_url else "shared secret" if settings.auth_jwt_secret else "disabled")
        )

        try:
            get_db().ping()
            logger.info("MongoDB reachable")
        except DatabaseError as e:
            logger.warning(f"MongoDB not reachable at startup: {e.message}")

        logger.info(f"Starting server on {settings.host}:{settings.port}")

        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
