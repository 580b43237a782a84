"""
Library package for SVM cutover automation.
"""

# Import version from lightweight module (avoids importing heavy deps at build time)
from ._version import __version__, __version_date__

from .context import RunContext, RunSettings
from .exceptions import (
    ConfigurationError,
    CutoverError,
    FatalError,
    MutationError,
    OntapApiError,
    PreconditionError,
    TransientError,
    ValidationError,
)
from .ontap_client import OntapClient
from .utils import (
    Phase,
    confirm_action,
    format_duration,
    setup_logging,
)

__all__ = [
    "__version__",
    "__version_date__",
    "OntapClient",
    "RunContext",
    "RunSettings",
    "CutoverError",
    "TransientError",
    "FatalError",
    "ValidationError",
    "ConfigurationError",
    "PreconditionError",
    "MutationError",
    "OntapApiError",
    "Phase",
    "setup_logging",
    "format_duration",
    "confirm_action",
]
