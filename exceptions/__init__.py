# Exceptions package
from .custom_exceptions import (
    DatabaseOperationException,
    DeletionStepFailedException,
    DevelopmentDatabaseInTestModeException,
    DevelopmentUsingTestDatabaseWarning,
    MissingConnectionException,
    NotATestDatabaseException,
    OliviaGoldException,
    ProductionDatabaseException,
    UnsafeDatabaseException,
    ValidationException,
)

__all__ = [
    'OliviaGoldException',
    'ValidationException',
    'DatabaseOperationException',
    'UnsafeDatabaseException',
    'MissingConnectionException',
    'NotATestDatabaseException',
    'DevelopmentDatabaseInTestModeException',
    'ProductionDatabaseException',
    'DeletionStepFailedException',
    'DevelopmentUsingTestDatabaseWarning',
]
