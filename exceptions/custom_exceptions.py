"""
Custom Exception Classes for the Olivia Gold database guard

Provides a hierarchy of exceptions for refusing destructive operations and
reporting failed ones. All custom exceptions inherit from OliviaGoldException
which includes status codes and details.
"""

import uuid
from datetime import datetime
from typing import Any


class OliviaGoldException(Exception):
    """Base exception for all Olivia Gold errors"""

    def __init__(self, message: str, status_code: int = 500, details: dict[Any, Any] | None = None):
        """
        Args:
            message: Human-readable error message
            status_code: Status code for the error
            details: Additional context as a dictionary
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(OliviaGoldException):
    """Raised when configuration or input validation fails"""

    def __init__(self, field: str, message: str, details: dict[Any, Any] | None = None):
        """
        Args:
            field: Name of the field that failed validation
            message: Description of the validation error
            details: Additional context

        Example:
            raise ValidationException('ENVIRONMENT', "Unknown runtime mode 'staging'")
        """
        full_message = f"Validation error on field '{field}': {message}"
        extra_details = {"field": field}
        if details:
            extra_details.update(details)
        super().__init__(full_message, status_code=400, details=extra_details)


class DatabaseOperationException(OliviaGoldException):
    """Raised when database operations fail"""

    def __init__(
        self,
        operation: str,
        message: str = "",
        table: str = "",
        details: dict[Any, Any] | None = None,
    ):
        """
        Args:
            operation: Type of operation (e.g., 'connect', 'query', 'delete')
            message: Description of the database error
            table: Name of the table
            details: Additional context (e.g., statement, error message)

        Example:
            raise DatabaseOperationException('delete', table='Order', details={'error': str(e)})
        """
        self.operation = operation
        self.table = table
        self.correlation_id = str(uuid.uuid4())
        self.timestamp = datetime.utcnow().isoformat()

        error_message = message or f"Database operation '{operation}' failed"
        if table and not message:
            error_message += f" on table '{table}'"

        super().__init__(error_message, status_code=500, details=details)


class UnsafeDatabaseException(OliviaGoldException):
    """Raised when a destructive operation is refused for the resolved database"""

    reason = "unsafe"

    def __init__(self, message: str, target: str | None = None, details: dict[Any, Any] | None = None):
        """
        Args:
            message: Actionable description of why the operation was refused
            target: Redacted connection string the operation would have hit
            details: Additional context
        """
        self.target = target
        extra_details = {"reason": self.reason, "target": target}
        if details:
            extra_details.update(details)
        super().__init__(message, status_code=403, details=extra_details)


class MissingConnectionException(UnsafeDatabaseException):
    """No connection string is defined while running in test mode"""

    reason = "missing_connection"


class NotATestDatabaseException(UnsafeDatabaseException):
    """The connection string lacks the test marker while running in test mode"""

    reason = "not_a_test_database"


class DevelopmentDatabaseInTestModeException(UnsafeDatabaseException):
    """The development database is targeted while running in test mode"""

    reason = "development_database_in_test_mode"


class ProductionDatabaseException(UnsafeDatabaseException):
    """Destructive operations are never authorized in production mode"""

    reason = "production_mode"


class DeletionStepFailedException(OliviaGoldException):
    """Raised when one step of a bulk deletion fails"""

    def __init__(self, entity: str, cause: BaseException, details: dict[Any, Any] | None = None):
        """
        Args:
            entity: Entity whose deletion failed (e.g., 'Orders')
            cause: The underlying error, also chained as __cause__
            details: Additional context

        Example:
            raise DeletionStepFailedException('Orders', e) from e
        """
        self.entity = entity
        self.cause = cause
        extra_details = {"entity": entity, "error": str(cause)}
        if details:
            extra_details.update(details)
        super().__init__(
            f"Deletion of '{entity}' failed: {cause}", status_code=500, details=extra_details
        )


class DevelopmentUsingTestDatabaseWarning(UserWarning):
    """Development mode is pointed at a test database (non-fatal)"""
