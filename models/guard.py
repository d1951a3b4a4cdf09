# models/guard.py
"""
Guard Models

Value objects passed between the environment resolver, the identity
validator and the destructive-operation gate.
"""

import warnings
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from exceptions import (
    DevelopmentDatabaseInTestModeException,
    DevelopmentUsingTestDatabaseWarning,
    MissingConnectionException,
    NotATestDatabaseException,
    ProductionDatabaseException,
    UnsafeDatabaseException,
)
from utils import redact_connection


class RuntimeMode(str, Enum):
    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class DatabaseEnvironment(BaseModel):
    """Resolved runtime mode and connection strings for one process"""

    model_config = ConfigDict(frozen=True)

    mode: RuntimeMode = Field(default=RuntimeMode.DEVELOPMENT)
    connection: str | None = Field(default=None, description="Connection string used by the process")
    test_connection: str | None = Field(default=None, description="TEST_DATABASE_URL, if defined")
    source: str | None = Field(default=None, description="Config file the values were loaded from")

    @property
    def redacted_connection(self) -> str | None:
        return redact_connection(self.connection)


class SafetyStatus(str, Enum):
    SAFE = "safe"
    SAFE_WITH_WARNING = "safe_with_warning"
    UNSAFE = "unsafe"


class SafetyReason(str, Enum):
    MISSING_CONNECTION = "missing_connection"
    NOT_A_TEST_DATABASE = "not_a_test_database"
    DEVELOPMENT_DATABASE_IN_TEST_MODE = "development_database_in_test_mode"
    PRODUCTION_MODE = "production_mode"
    DEVELOPMENT_USING_TEST_DATABASE = "development_using_test_database"
    SHARED_DEVELOPMENT_AND_TEST_CONNECTION = "shared_development_and_test_connection"


_UNSAFE_EXCEPTIONS: dict[SafetyReason, type[UnsafeDatabaseException]] = {
    SafetyReason.MISSING_CONNECTION: MissingConnectionException,
    SafetyReason.NOT_A_TEST_DATABASE: NotATestDatabaseException,
    SafetyReason.DEVELOPMENT_DATABASE_IN_TEST_MODE: DevelopmentDatabaseInTestModeException,
    SafetyReason.PRODUCTION_MODE: ProductionDatabaseException,
}


class SafetyOutcome(BaseModel):
    """Tri-state result of validating a database identity"""

    model_config = ConfigDict(frozen=True)

    status: SafetyStatus
    reason: SafetyReason | None = None
    message: str = ""
    target: str | None = Field(default=None, description="Redacted connection string")
    checks: tuple[str, ...] = Field(default=(), description="Rules that passed before the outcome")

    @classmethod
    def safe(cls, message: str = "", target: str | None = None, checks=()) -> "SafetyOutcome":
        return cls(status=SafetyStatus.SAFE, message=message, target=target, checks=tuple(checks))

    @classmethod
    def warning(
        cls, reason: SafetyReason, message: str, target: str | None = None, checks=()
    ) -> "SafetyOutcome":
        return cls(
            status=SafetyStatus.SAFE_WITH_WARNING,
            reason=reason,
            message=message,
            target=target,
            checks=tuple(checks),
        )

    @classmethod
    def unsafe(
        cls, reason: SafetyReason, message: str, target: str | None = None, checks=()
    ) -> "SafetyOutcome":
        return cls(
            status=SafetyStatus.UNSAFE,
            reason=reason,
            message=message,
            target=target,
            checks=tuple(checks),
        )

    @property
    def is_safe(self) -> bool:
        """True for both Safe and SafeWithWarning"""
        return self.status != SafetyStatus.UNSAFE

    def raise_for_status(self) -> None:
        """
        Raise the exception mapped to an unsafe reason, or emit a
        DevelopmentUsingTestDatabaseWarning for a warning outcome.
        """
        if self.status == SafetyStatus.UNSAFE:
            exception_class = _UNSAFE_EXCEPTIONS.get(self.reason, UnsafeDatabaseException)
            raise exception_class(self.message, target=self.target)
        if self.status == SafetyStatus.SAFE_WITH_WARNING:
            warnings.warn(self.message, DevelopmentUsingTestDatabaseWarning, stacklevel=2)


class DeletionStep(BaseModel):
    """One bulk deletion, e.g. every row of the Order table"""

    model_config = ConfigDict(frozen=True)

    entity: str = Field(description="Name used in log output, e.g. 'Orders'")
    table: str = Field(description="Table name as created by Prisma, e.g. 'Order'")
    references: tuple[str, ...] = Field(
        default=(), description="Tables this table holds foreign keys to"
    )
    optional: bool = Field(
        default=False, description="Skip the step when the table does not exist"
    )


class DeletionStepResult(BaseModel):
    entity: str
    table: str
    rows_deleted: int = 0
    skipped: bool = False


class SequenceResetStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class SequenceResetResult(BaseModel):
    """Outcome of resetting one table's auto-increment sequence"""

    table: str
    status: SequenceResetStatus
    reason: str | None = None

    @classmethod
    def ok(cls, table: str) -> "SequenceResetResult":
        return cls(table=table, status=SequenceResetStatus.OK)

    @classmethod
    def skipped(cls, table: str, reason: str) -> "SequenceResetResult":
        return cls(table=table, status=SequenceResetStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, table: str, error: BaseException) -> "SequenceResetResult":
        return cls(table=table, status=SequenceResetStatus.FAILED, reason=str(error))


class GateState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ABORTED = "aborted"
    DELETING = "deleting"
    SEQUENCE_RESETTING = "sequence_resetting"
    DONE = "done"
    FAILED = "failed"


class GateRunReport(BaseModel):
    """Summary of one gate invocation"""

    state: GateState
    outcome: SafetyOutcome | None = None
    deleted: list[DeletionStepResult] = Field(default_factory=list)
    sequences: list[SequenceResetResult] = Field(default_factory=list)

    @property
    def total_rows_deleted(self) -> int:
        return sum(step.rows_deleted for step in self.deleted)
