"""
Unified error handling for chainstage.

Every error the orchestrator raises derives from ChainstageError and carries
an exit code plus structured details that are logged as key/value fields.

Exit Codes:
- 0: Success
- 1: Warning (advisory, operation succeeded with warnings)
- 2: Blocked (operation refused before doing any work)
- 10: Configuration error
- 11: Network error (endpoint or executor failure)
- 12: Validation error (unit graph, templates, ledger conflicts)
- 13: Deployment failed (a unit body raised)
- 127: Unknown/internal error

None of these errors are retried by the orchestrator. Retry policy lives in
the network client (see chainstage.networks.rpc).
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    BLOCKED = 2
    CONFIG_ERROR = 10
    NETWORK_ERROR = 11
    VALIDATION_ERROR = 12
    DEPLOYMENT_FAILED = 13
    UNKNOWN_ERROR = 127


class ChainstageError(Exception):
    """Base exception for chainstage errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ChainstageError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


# Network registry


class DuplicateNetworkError(ChainstageError):
    """Raised when a network id is registered twice."""

    exit_code = ExitCode.CONFIG_ERROR

    def __init__(self, network_id: str):
        super().__init__(
            f"Network '{network_id}' is already registered",
            {"network": network_id},
        )
        self.network_id = network_id


class UnknownNetworkError(ChainstageError):
    """Raised when a network id has no registered descriptor."""

    exit_code = ExitCode.CONFIG_ERROR

    def __init__(self, network_id: str):
        super().__init__(f"Network '{network_id}' is not configured", {"network": network_id})
        self.network_id = network_id


class NoReachableEndpointError(ChainstageError):
    """Raised when every endpoint of a network failed to respond."""

    exit_code = ExitCode.NETWORK_ERROR

    def __init__(self, network_id: str, endpoints: Sequence[str], errors: Sequence[str] = ()):
        super().__init__(
            f"No reachable endpoint for network '{network_id}'",
            {"network": network_id, "endpoints": list(endpoints), "errors": list(errors)},
        )
        self.network_id = network_id
        self.endpoints = list(endpoints)


# Artifacts


class InvalidTemplateError(ChainstageError):
    """Raised when a template name is not in the static catalog."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, template: str):
        super().__init__(f"Unknown artifact template '{template}'", {"template": template})
        self.template = template


class PublishRejectedError(ChainstageError):
    """Raised when the network rejects a submission or confirmation times out."""

    exit_code = ExitCode.NETWORK_ERROR


# Ledger


class InvalidLedgerKeyError(ChainstageError, ValueError):
    """Raised when an id cannot be stored by the configured ledger backend."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, kind: str, value: str):
        super().__init__(
            f"{kind} '{value}' cannot be used as a ledger file name",
            {"kind": kind, "value": value},
        )
        self.value = value


class LedgerConflictError(ChainstageError):
    """Raised when recording over an existing ledger entry without force."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, network_id: str, unit_id: str, reason: str | None = None):
        message = f"Ledger already holds '{unit_id}' on network '{network_id}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"network": network_id, "unit": unit_id})
        self.network_id = network_id
        self.unit_id = unit_id


# Unit graph


class DuplicateUnitError(ChainstageError):
    """Raised when two deployment units share an identifier."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, unit_id: str):
        super().__init__(f"Deployment unit '{unit_id}' is already registered", {"unit": unit_id})
        self.unit_id = unit_id


class CyclicDependencyError(ChainstageError):
    """Raised when the unit dependency graph contains a cycle."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, cycle: Sequence[str]):
        path = " -> ".join(cycle)
        super().__init__(f"Cyclic dependency between units: {path}", {"cycle": list(cycle)})
        self.cycle = list(cycle)


class UnresolvedDependencyError(ChainstageError):
    """Raised when an identifier has no unit or no ledger entry to resolve to."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, identifier: str, message: str | None = None, **details: Any):
        super().__init__(
            message or f"'{identifier}' has not been deployed",
            {"identifier": identifier, **details},
        )
        self.identifier = identifier


class UnitExecutionError(ChainstageError):
    """Raised when a deployment unit body fails."""

    exit_code = ExitCode.DEPLOYMENT_FAILED

    def __init__(self, unit_id: str, cause: BaseException):
        super().__init__(
            f"Deployment unit '{unit_id}' failed: {cause}",
            {"unit": unit_id, "error_type": type(cause).__name__},
        )
        self.unit_id = unit_id
        self.cause = cause


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - ChainstageError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except ChainstageError as e:
                if log_errors:
                    # Detail keys never override the fixed fields.
                    fields = {k: v for k, v in e.details.items() if k != "event"}
                    fields.update(
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                    )
                    logger.error("command_error", **fields)
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: ChainstageError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
