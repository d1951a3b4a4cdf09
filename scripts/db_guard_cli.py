#!/usr/bin/env python
"""
Database Guard CLI

Command-line interface for every operation that can wipe shop data. Each
command resolves the runtime environment once, validates the target
database, and only then touches it.

Usage:
    python scripts/db_guard_cli.py <command> [options]

Commands:
    check         Validate the configured connection string (no connection)
    validate      Validate, connect, and confirm the server-reported database
    reset         Delete all shop data in foreign-key order and reset sequences
    clean-test    Clear the order, product, customer and payment test tables
    prepare-test  Drop and recreate the public schema of the test database

Options:
    --env-file PATH    Config file to load instead of .env / .env.test
    --no-live          Skip the server-side database name confirmation
    --yes              Do not wait before a reset
    --skip-sequences   Do not reset auto-increment sequences after a reset

Examples:
    ENVIRONMENT=test python scripts/db_guard_cli.py validate
    ENVIRONMENT=test python scripts/db_guard_cli.py prepare-test
    python scripts/db_guard_cli.py reset --yes

Exit codes:
    0  Validated and completed
    1  Validation refused the database, or an operation failed
"""

import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import asyncio
from collections.abc import Awaitable, Callable, Mapping

from config import Settings, get_settings
from exceptions import DeletionStepFailedException, OliviaGoldException, UnsafeDatabaseException
from logging_config import logger
from models.guard import DatabaseEnvironment, RuntimeMode, SafetyStatus
from models.shop_schema import SEQUENCE_TABLES, SHOP_DELETION_PLAN, TEST_CLEANUP_PLAN
from services.database_client import DatabaseClient
from services.database_safety import (
    DatabaseSafetyPolicy,
    confirm_live_database,
    report_outcome,
    validate_database_identity,
)
from services.destructive_gate import DestructiveOperationGate
from services.environment_resolver import EnvironmentResolver

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class GuardCLI:
    """Unified CLI for guarded database operations"""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        settings: Settings | None = None,
        client_factory: Callable[[str], object] = DatabaseClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.environ = environ
        self.settings = settings
        self.client_factory = client_factory
        self.sleep = sleep
        self.args = None
        self.environment: DatabaseEnvironment | None = None
        self.policy: DatabaseSafetyPolicy | None = None

        # Map command names to their handlers
        self.handlers: dict[str, Callable[[], Awaitable[int]]] = {
            "check": self.check,
            "validate": self.validate,
            "reset": self.reset,
            "clean-test": self.clean_test,
            "prepare-test": self.prepare_test,
        }

    def setup_parser(self) -> argparse.ArgumentParser:
        """Create argument parser"""
        parser = argparse.ArgumentParser(
            description="Guarded database operations for the Olivia Gold shop",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=__doc__,
        )

        parser.add_argument("command", choices=list(self.handlers.keys()), help="Operation to run")

        parser.add_argument(
            "--env-file", type=str, help="Config file to load instead of .env / .env.test"
        )

        parser.add_argument(
            "--no-live",
            action="store_true",
            help="Skip the server-side database name confirmation",
        )

        parser.add_argument("--yes", action="store_true", help="Do not wait before a reset")

        parser.add_argument(
            "--skip-sequences",
            action="store_true",
            help="Do not reset auto-increment sequences after a reset",
        )

        return parser

    def resolve(self) -> DatabaseEnvironment:
        """Resolve the environment once for this invocation"""
        sources = None
        if self.args.env_file:
            sources = {mode: self.args.env_file for mode in RuntimeMode}
        resolver = EnvironmentResolver(environ=self.environ, sources=sources)
        return resolver.resolve()

    def make_gate(self) -> DestructiveOperationGate:
        return DestructiveOperationGate(
            self.environment,
            self.client_factory(self.environment.connection),
            policy=self.policy,
            live_check=not self.args.no_live,
        )

    def require_test_mode(self) -> bool:
        if self.environment.mode != RuntimeMode.TEST:
            logger.error(
                f"'{self.args.command}' only runs in test mode "
                f"(current mode: {self.environment.mode.value}). Set ENVIRONMENT=test"
            )
            return False
        return True

    def refuse_if_unsafe(self) -> bool:
        """Validate the connection string and log the refusal, before any warning or wait"""
        outcome = validate_database_identity(self.environment, self.policy)
        if outcome.status != SafetyStatus.UNSAFE:
            return False
        report_outcome(outcome)
        logger.error("OPERATION CANCELLED TO PROTECT DEVELOPMENT DATA")
        return True

    # Command handlers

    async def check(self) -> int:
        """Validate the connection string without connecting"""
        outcome = validate_database_identity(self.environment, self.policy)
        report_outcome(outcome)
        if outcome.status == SafetyStatus.UNSAFE:
            logger.error("OPERATION CANCELLED TO PROTECT DEVELOPMENT DATA")
            return EXIT_FAILURE
        logger.info("Check completed - data protected")
        return EXIT_OK

    async def validate(self) -> int:
        """Validate the connection string, then the database the server reports"""
        if await self.check() != EXIT_OK:
            return EXIT_FAILURE
        if self.args.no_live:
            return EXIT_OK
        if not self.environment.connection:
            logger.error("DATABASE_URL is not defined, cannot test the connection")
            return EXIT_FAILURE

        logger.info("Testing database connection...")
        client = self.client_factory(self.environment.connection)
        try:
            await client.connect()
            live_outcome = await confirm_live_database(client, self.environment.mode, self.policy)
        finally:
            await client.disconnect()

        report_outcome(live_outcome)
        if live_outcome.status == SafetyStatus.UNSAFE:
            logger.error("Review the database configuration before continuing")
            return EXIT_FAILURE
        logger.success("Database configuration validated")
        return EXIT_OK

    async def reset(self) -> int:
        """Delete all shop data after a cancel window"""
        if self.refuse_if_unsafe():
            return EXIT_FAILURE

        countdown = 0 if self.args.yes else self.settings.RESET_COUNTDOWN_SECONDS
        logger.warning(f"This will delete ALL data from {self.environment.redacted_connection}")
        if countdown:
            logger.warning(f"Waiting {countdown} seconds before continuing (Ctrl+C to cancel)...")
            await self.sleep(countdown)

        sequence_tables = ()
        if self.settings.SEQUENCE_RESET_ENABLED and not self.args.skip_sequences:
            sequence_tables = SEQUENCE_TABLES

        report = await self.make_gate().run(SHOP_DELETION_PLAN, sequence_tables)
        logger.info(f"Deleted {report.total_rows_deleted} rows from {len(report.deleted)} tables")
        return EXIT_OK

    async def clean_test(self) -> int:
        """Clear the tables touched by the payment and order tests"""
        if not self.require_test_mode():
            return EXIT_FAILURE
        await self.make_gate().run(TEST_CLEANUP_PLAN)
        return EXIT_OK

    async def prepare_test(self) -> int:
        """Force-reset the schema of the test database"""
        if not self.require_test_mode():
            return EXIT_FAILURE
        await self.make_gate().reset_schema()
        logger.info("Test database prepared, run the schema push next")
        return EXIT_OK

    def run(self, argv: list[str] | None = None) -> int:
        """Main execution flow"""
        parser = self.setup_parser()
        self.args = parser.parse_args(argv)

        logger.info("=== Olivia Gold Database Guard ===")
        logger.info(f"Command: {self.args.command}")

        try:
            self.environment = self.resolve()
            logger.info(f"Environment: {self.environment.mode.value}")
            if self.settings is None:
                self.settings = get_settings(self.environment.source)
            self.policy = DatabaseSafetyPolicy.from_settings(self.settings)

            handler = self.handlers[self.args.command]
            return asyncio.run(handler())

        except UnsafeDatabaseException as e:
            logger.error(f"Refused to run: {e.message}")
            return EXIT_FAILURE
        except DeletionStepFailedException as e:
            logger.error(f"Operation failed at step '{e.entity}': {e.cause}")
            return EXIT_FAILURE
        except OliviaGoldException as e:
            logger.error(f"Operation failed: {e.message}")
            return EXIT_FAILURE
        except KeyboardInterrupt:
            logger.warning("Operation interrupted by user")
            return EXIT_INTERRUPTED
        except Exception as e:
            logger.exception(f"Operation failed with error: {str(e)}")
            return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    return GuardCLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
