"""
Destructive-Operation Gate - Guarded bulk deletes and schema resets

The only component allowed to mutate the shop database. A run moves through
idle -> validating -> {aborted | deleting -> sequence_resetting -> done}.
A failed deletion step ends in the failed state; there is no retry from
deleting, a new run needs a new gate.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from exceptions import DeletionStepFailedException, ValidationException
from logging_config import logger
from models.guard import (
    DatabaseEnvironment,
    DeletionStep,
    DeletionStepResult,
    GateRunReport,
    GateState,
    SafetyOutcome,
    SafetyStatus,
    SequenceResetResult,
    SequenceResetStatus,
)
from services.database_client import quote_identifier
from services.database_safety import (
    DEFAULT_POLICY,
    DatabaseSafetyPolicy,
    confirm_live_database,
    report_outcome,
    validate_database_identity,
)

RELATION_EXISTS_QUERY = "SELECT to_regclass(:name) IS NOT NULL AS present"


def check_deletion_order(steps: Iterable[DeletionStep]) -> None:
    """
    Verify that every table is deleted before the tables it references

    Raises:
        ValidationException: If a step references a table deleted earlier
    """
    deleted: set[str] = set()
    for step in steps:
        for parent in step.references:
            if parent in deleted:
                raise ValidationException(
                    field="steps",
                    message=(
                        f"'{step.table}' references '{parent}', "
                        f"which is deleted before it"
                    ),
                    details={"entity": step.entity, "parent": parent},
                )
        deleted.add(step.table)


class DestructiveOperationGate:
    """Runs destructive operations only after the database identity is validated"""

    def __init__(
        self,
        environment: DatabaseEnvironment,
        client: Any,
        policy: DatabaseSafetyPolicy = DEFAULT_POLICY,
        live_check: bool = True,
    ):
        """
        Args:
            environment: Resolved runtime mode and connection strings
            client: Database client exposing connect, disconnect, raw_query,
                delete_many and current_database
            policy: Test marker and development identifiers
            live_check: Also validate the database name reported by the server
        """
        self.environment = environment
        self.client = client
        self.policy = policy
        self.live_check = live_check
        self.state = GateState.IDLE

    def _ensure_idle(self) -> None:
        if self.state != GateState.IDLE:
            raise RuntimeError(
                f"Gate already used (state: {self.state.value}). Create a new gate to run again."
            )

    def _abort(self, outcome: SafetyOutcome) -> None:
        self.state = GateState.ABORTED
        logger.error("Operation cancelled to protect development data")
        outcome.raise_for_status()

    async def _authorize(self) -> SafetyOutcome:
        self.state = GateState.VALIDATING
        logger.info("Checking database protection...")

        outcome = validate_database_identity(self.environment, self.policy)
        report_outcome(outcome)
        if outcome.status == SafetyStatus.UNSAFE:
            self._abort(outcome)

        await self.client.connect()

        if self.live_check:
            live_outcome = await confirm_live_database(
                self.client, self.environment.mode, self.policy
            )
            report_outcome(live_outcome)
            if live_outcome.status == SafetyStatus.UNSAFE:
                self._abort(live_outcome)
            if live_outcome.status == SafetyStatus.SAFE_WITH_WARNING and outcome.status == SafetyStatus.SAFE:
                outcome = live_outcome

        outcome.raise_for_status()
        return outcome

    async def _relation_exists(self, name: str) -> bool:
        rows = await self.client.raw_query(RELATION_EXISTS_QUERY, {"name": quote_identifier(name)})
        return bool(rows) and bool(rows[0].get("present"))

    async def _delete(self, step: DeletionStep) -> DeletionStepResult:
        try:
            if step.optional and not await self._relation_exists(step.table):
                logger.info(f"  {step.entity} skipped, table {step.table} does not exist")
                return DeletionStepResult(entity=step.entity, table=step.table, skipped=True)
            rows = await self.client.delete_many(step.table)
        except Exception as e:
            logger.error(f"  Error deleting {step.entity}: {str(e)}")
            raise DeletionStepFailedException(step.entity, e) from e

        # clients that do not report counts return None
        rows_deleted = rows if isinstance(rows, int) else 0
        logger.success(f"  {step.entity} deleted ({rows_deleted} rows)")
        return DeletionStepResult(entity=step.entity, table=step.table, rows_deleted=rows_deleted)

    async def _reset_sequence(self, table: str) -> SequenceResetResult:
        sequence = f"{table}_id_seq"
        try:
            if await self._relation_exists(sequence):
                await self.client.raw_query(
                    f"ALTER SEQUENCE {quote_identifier(sequence)} RESTART WITH 1"
                )
                result = SequenceResetResult.ok(table)
            else:
                result = SequenceResetResult.skipped(table, "no sequence")
        except Exception as e:
            result = SequenceResetResult.failed(table, e)

        if result.status == SequenceResetStatus.OK:
            logger.info(f"  Sequence {sequence} restarted")
        elif result.status == SequenceResetStatus.SKIPPED:
            logger.info(f"  No sequence to reset for table {table}")
        else:
            logger.info(f"  Could not reset sequence for table {table}: {result.reason}")
        return result

    async def run(
        self, steps: Sequence[DeletionStep], sequence_tables: Sequence[str] = ()
    ) -> GateRunReport:
        """
        Validate, then delete every table in declared order

        Args:
            steps: Deletion steps, children before parents
            sequence_tables: Tables whose id sequences are restarted afterwards

        Returns:
            GateRunReport in the done state

        Raises:
            UnsafeDatabaseException: Validation refused the database, nothing was deleted
            DeletionStepFailedException: A step failed, later steps were not attempted
        """
        self._ensure_idle()
        steps = list(steps)
        check_deletion_order(steps)

        report = GateRunReport(state=self.state)
        try:
            report.outcome = await self._authorize()

            self.state = GateState.DELETING
            logger.info("Deleting existing data...")
            for step in steps:
                report.deleted.append(await self._delete(step))
            logger.success(f"Database cleaned successfully ({report.total_rows_deleted} rows)")

            self.state = GateState.SEQUENCE_RESETTING
            if sequence_tables:
                logger.info("Resetting sequences...")
            for table in sequence_tables:
                report.sequences.append(await self._reset_sequence(table))

            self.state = GateState.DONE
            logger.success("Database reset completed")
        except Exception:
            if self.state != GateState.ABORTED:
                self.state = GateState.FAILED
            raise
        finally:
            report.state = self.state
            await self.client.disconnect()

        return report

    async def reset_schema(self, schema: str = "public") -> GateRunReport:
        """
        Validate, then drop and recreate a schema with everything in it

        Raises:
            UnsafeDatabaseException: Validation refused the database, nothing was dropped
        """
        self._ensure_idle()
        quoted = quote_identifier(schema)

        report = GateRunReport(state=self.state)
        try:
            report.outcome = await self._authorize()

            self.state = GateState.DELETING
            logger.info(f"Force-resetting schema {schema}...")
            await self.client.raw_query(f"DROP SCHEMA IF EXISTS {quoted} CASCADE")
            await self.client.raw_query(f"CREATE SCHEMA {quoted}")

            # a recreated schema has no sequences left to reset
            self.state = GateState.DONE
            logger.success(f"Schema {schema} reset")
        except Exception:
            if self.state != GateState.ABORTED:
                self.state = GateState.FAILED
            raise
        finally:
            report.state = self.state
            await self.client.disconnect()

        return report
