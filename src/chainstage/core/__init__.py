"""Core modules for chainstage - centralized error definitions."""

from chainstage.core.errors import (
    ChainstageError,
    ConfigurationError,
    CyclicDependencyError,
    DuplicateNetworkError,
    DuplicateUnitError,
    ExitCode,
    InvalidTemplateError,
    InvalidLedgerKeyError,
    LedgerConflictError,
    NoReachableEndpointError,
    PublishRejectedError,
    UnitExecutionError,
    UnknownNetworkError,
    UnresolvedDependencyError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "ChainstageError",
    "ConfigurationError",
    # Networks
    "DuplicateNetworkError",
    "UnknownNetworkError",
    "NoReachableEndpointError",
    # Artifacts
    "InvalidTemplateError",
    "PublishRejectedError",
    # Ledger
    "InvalidLedgerKeyError",
    "LedgerConflictError",
    # Units
    "DuplicateUnitError",
    "CyclicDependencyError",
    "UnresolvedDependencyError",
    "UnitExecutionError",
    # CLI helpers
    "main_with_error_handling",
    "format_error_message",
]
