"""
Custom exceptions for SVM cutover automation.
"""

from typing import Optional


class CutoverError(Exception):
    """Base class for all cutover errors."""


class TransientError(CutoverError):
    """
    Error that might be resolved by retrying.
    Examples: Network timeouts, 503 Service Unavailable.
    """


class FatalError(CutoverError):
    """
    Error that cannot be resolved by retrying.
    Examples: Invalid configuration, missing CIFS service, unequal interface counts.
    """


class ValidationError(FatalError):
    """Invalid input value."""


class ConfigurationError(FatalError):
    """Invalid configuration or arguments."""


class PreconditionError(FatalError):
    """A pre-flight condition failed; raised before any mutation."""


class CutoverCancelledError(FatalError):
    """Operator declined to continue or the run was cancelled."""


class PollTimeoutError(CutoverError):
    """A polled resource did not reach the expected state in time."""


class OntapApiError(CutoverError):
    """Error returned by the ONTAP REST or ZAPI interface."""

    def __init__(self, code: Optional[str] = None, message: str = "") -> None:
        self.code = code or "unknown"
        self.message = message
        super().__init__(f"ONTAP API error {self.code}: {message}")


class MutationError(CutoverError):
    """A change against one resource failed."""

    def __init__(self, phase: str, resource: str, reason: str) -> None:
        self.phase = phase
        self.resource = resource
        self.reason = reason
        super().__init__(f"[{phase}] {resource}: {reason}")


class SecurityValidationError(ValidationError):
    """Input rejected because it could escape its intended scope."""


class PhaseFailedError(FatalError):
    """A phase recorded errors after the source service went down; the run stops."""

    def __init__(self, phase: str, error_count: int) -> None:
        self.phase = phase
        self.error_count = error_count
        super().__init__(f"[{phase}] {error_count} error(s) recorded; stopping")
