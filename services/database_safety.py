"""
Database Safety - Identity validation for destructive operations

Decides whether a resolved (runtime mode, connection) pair may be wiped.
The test marker and the development database identifiers are defined once
in DatabaseSafetyPolicy and every rule goes through its two predicates.

validate_database_identity is pure and can be called repeatedly.
confirm_live_database asks the server which database the connection really
points to, for connection strings that hide their target behind an alias.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from config import Settings
from logging_config import logger
from models.guard import DatabaseEnvironment, RuntimeMode, SafetyOutcome, SafetyReason, SafetyStatus
from utils import redact_connection


class DatabaseSafetyPolicy(BaseModel):
    """Test marker and development identifiers shared by every check"""

    model_config = ConfigDict(frozen=True)

    test_marker: str = Field(default="test", min_length=1)
    development_identifiers: tuple[str, ...] = Field(
        default=("joyeria_elegante_dev", "_dev"), min_length=1
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseSafetyPolicy":
        return cls(
            test_marker=settings.TEST_DATABASE_MARKER,
            development_identifiers=settings.get_dev_database_identifiers(),
        )

    def has_test_marker(self, value: str | None) -> bool:
        if not value:
            return False
        return self.test_marker.lower() in value.lower()

    def references_development_database(self, value: str | None) -> bool:
        if not value:
            return False
        lowered = value.lower()
        return any(identifier.lower() in lowered for identifier in self.development_identifiers)


DEFAULT_POLICY = DatabaseSafetyPolicy()


def validate_database_identity(
    environment: DatabaseEnvironment, policy: DatabaseSafetyPolicy = DEFAULT_POLICY
) -> SafetyOutcome:
    """
    Validate the connection string of a resolved environment

    Args:
        environment: Resolved runtime mode and connection strings
        policy: Test marker and development identifiers

    Returns:
        Safe, SafeWithWarning or Unsafe. The first failing rule decides.
    """
    connection = environment.connection
    target = redact_connection(connection)
    checks: list[str] = []

    if environment.mode == RuntimeMode.PRODUCTION:
        return SafetyOutcome.unsafe(
            SafetyReason.PRODUCTION_MODE,
            "Destructive operations are not allowed in production mode",
            target=target,
        )

    if environment.mode == RuntimeMode.TEST:
        if not connection or not connection.strip():
            return SafetyOutcome.unsafe(
                SafetyReason.MISSING_CONNECTION,
                "DATABASE_URL is not defined for the test environment. "
                "Define DATABASE_URL or TEST_DATABASE_URL in .env.test",
                target=target,
            )
        checks.append("Connection string is defined")

        if policy.references_development_database(connection):
            return SafetyOutcome.unsafe(
                SafetyReason.DEVELOPMENT_DATABASE_IN_TEST_MODE,
                f"Test mode is pointed at the development database: {target}. "
                "Operation cancelled to protect development data",
                target=target,
                checks=checks,
            )
        checks.append("Connection does not reference the development database")

        if not policy.has_test_marker(connection):
            return SafetyOutcome.unsafe(
                SafetyReason.NOT_A_TEST_DATABASE,
                f"Test mode detected but the database does not look like a test database: {target}. "
                f"Its name must contain '{policy.test_marker}'",
                target=target,
                checks=checks,
            )
        checks.append(f"Connection contains the test marker '{policy.test_marker}'")
        return SafetyOutcome.safe("Test database verified", target=target, checks=checks)

    # development
    if policy.has_test_marker(connection):
        return SafetyOutcome.warning(
            SafetyReason.DEVELOPMENT_USING_TEST_DATABASE,
            f"Development mode is using a test database: {target}",
            target=target,
        )
    checks.append("Development connection does not use a test database")

    if connection and environment.test_connection and connection == environment.test_connection:
        return SafetyOutcome.warning(
            SafetyReason.SHARED_DEVELOPMENT_AND_TEST_CONNECTION,
            "DATABASE_URL and TEST_DATABASE_URL point to the same database",
            target=target,
            checks=checks,
        )
    if environment.test_connection:
        checks.append("Development and test connections differ")

    return SafetyOutcome.safe("Development database verified", target=target, checks=checks)


async def confirm_live_database(
    client: Any, mode: RuntimeMode, policy: DatabaseSafetyPolicy = DEFAULT_POLICY
) -> SafetyOutcome:
    """
    Apply the same predicates to the database name reported by the server

    Args:
        client: Connected database client exposing current_database()
        mode: Runtime mode of the process
        policy: Test marker and development identifiers

    Returns:
        SafetyOutcome whose target is the server-reported database name
    """
    db_name = await client.current_database()
    logger.info(f"Server reports current database: {db_name}")

    if mode == RuntimeMode.PRODUCTION:
        return SafetyOutcome.unsafe(
            SafetyReason.PRODUCTION_MODE,
            "Destructive operations are not allowed in production mode",
            target=db_name,
        )

    if mode == RuntimeMode.TEST:
        if policy.references_development_database(db_name):
            return SafetyOutcome.unsafe(
                SafetyReason.DEVELOPMENT_DATABASE_IN_TEST_MODE,
                f"Test mode is connected to the development database '{db_name}'",
                target=db_name,
            )
        if not policy.has_test_marker(db_name):
            return SafetyOutcome.unsafe(
                SafetyReason.NOT_A_TEST_DATABASE,
                f"Test mode is connected to '{db_name}', which is not a test database",
                target=db_name,
            )
        return SafetyOutcome.safe(
            f"Server confirms test database '{db_name}'",
            target=db_name,
            checks=("Server-reported database is a test database",),
        )

    if policy.has_test_marker(db_name):
        return SafetyOutcome.warning(
            SafetyReason.DEVELOPMENT_USING_TEST_DATABASE,
            f"Development mode is connected to the test database '{db_name}'",
            target=db_name,
        )
    return SafetyOutcome.safe(f"Server confirms development database '{db_name}'", target=db_name)


def report_outcome(outcome: SafetyOutcome) -> None:
    """Log one status line per passed rule, then the outcome"""
    for check in outcome.checks:
        logger.success(check)

    if outcome.status == SafetyStatus.SAFE:
        logger.success(outcome.message)
        if outcome.target:
            logger.info(f"Using: {outcome.target}")
    elif outcome.status == SafetyStatus.SAFE_WITH_WARNING:
        logger.warning(outcome.message)
    else:
        logger.error(outcome.message)
