# Services package
from .database_client import DatabaseClient
from .database_safety import DatabaseSafetyPolicy, confirm_live_database, validate_database_identity
from .destructive_gate import DestructiveOperationGate, check_deletion_order
from .environment_resolver import EnvironmentResolver, resolve_environment

__all__ = [
    "EnvironmentResolver",
    "resolve_environment",
    "DatabaseSafetyPolicy",
    "validate_database_identity",
    "confirm_live_database",
    "DestructiveOperationGate",
    "check_deletion_order",
    "DatabaseClient",
]
