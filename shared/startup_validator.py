"""
Startup configuration validation module.

Catches misconfigurations at boot (fail-fast) rather than on the first
request that needs them.

Usage:
    from shared.startup_validator import validate_startup_config, StartupValidationError

    async def main():
        try:
            await validate_startup_config()
        except StartupValidationError as e:
            logger.critical(f"Startup blocked: {e}")
            sys.exit(1)
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shared.config import get_settings

logger = logging.getLogger(__name__)


class StartupValidationError(Exception):
    """Raised when critical startup validation fails."""

    pass


async def validate_startup_config(check_database: bool = True) -> dict[str, bool]:
    """
    Validate all critical configuration at startup.

    Performs tiered validation:
    - TIER 1 (CRITICAL): Block startup if any fail
    - TIER 2 (IMPORTANT): Warn but allow startup

    Args:
        check_database: Also run a SELECT 1 against DATABASE_URL (critical).

    Returns:
        dict of {check_name: passed} for all validations

    Raises:
        StartupValidationError: If any CRITICAL check fails
    """
    settings = get_settings()
    results: dict[str, bool] = {}
    critical_failures: list[str] = []

    # =========================================================================
    # TIER 1: CRITICAL (block startup if any fail)
    # =========================================================================

    # 1. JWT secret for console sessions
    if not settings.AUTH_JWT_SECRET:
        critical_failures.append(
            "AUTH_JWT_SECRET is not set - admin and superadmin sessions cannot be verified"
        )
        results["auth_jwt_secret"] = False
    else:
        results["auth_jwt_secret"] = True
        logger.info("  [OK] Session JWT secret configured")

    # 2. Business timezone
    try:
        ZoneInfo(settings.TIMEZONE)
        results["timezone"] = True
        logger.info(f"  [OK] Timezone: {settings.TIMEZONE}")
    except (ZoneInfoNotFoundError, ValueError):
        critical_failures.append(f"TIMEZONE is not a valid IANA timezone: {settings.TIMEZONE}")
        results["timezone"] = False

    # 3. Database connectivity
    if check_database:
        results["database_connection"] = await validate_database_connection()
        if not results["database_connection"]:
            critical_failures.append("Database connection failed - check DATABASE_URL")

    # =========================================================================
    # TIER 2: IMPORTANT (warn but allow startup)
    # =========================================================================

    # 4. Database URL format validation
    if not settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
        logger.warning("DATABASE_URL should use asyncpg driver: postgresql+asyncpg://...")
        results["database_url_format"] = False
    else:
        results["database_url_format"] = True

    # 5. Webhook test function
    if not settings.WEBHOOK_TEST_FUNCTION_URL:
        logger.warning("WEBHOOK_TEST_FUNCTION_URL not set - webhook tests will fail")
        results["webhook_test_function"] = False
    else:
        results["webhook_test_function"] = True
        logger.info("  [OK] Webhook test function configured")

    # 6. Superadmin access
    if not settings.superadmin_emails:
        logger.info("  [INFO] SUPERADMIN_EMAILS empty - only tipo_usuario grants superadmin")
        results["superadmin_emails"] = False
    else:
        results["superadmin_emails"] = True

    # =========================================================================
    # Summary and result
    # =========================================================================

    passed = sum(1 for v in results.values() if v)
    total = len(results)
    logger.info(f"Startup validation: {passed}/{total} checks passed")

    if critical_failures:
        logger.critical("=" * 60)
        logger.critical("STARTUP BLOCKED - Critical configuration errors:")
        for i, failure in enumerate(critical_failures, 1):
            logger.critical(f"  {i}. {failure}")
        logger.critical("=" * 60)
        raise StartupValidationError(
            f"Critical startup validation failed ({len(critical_failures)} errors): "
            f"{'; '.join(critical_failures)}"
        )

    return results


async def validate_database_connection() -> bool:
    """
    Validate database connection is working.

    Returns:
        True if database connection successful, False otherwise
    """
    from database.connection import get_async_session

    try:
        async with get_async_session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {e}")
        return False

    logger.info("  [OK] Database connection successful")
    return True
