"""
Module package initialization.
"""

from .export import ConfigurationExporter
from .identity import IdentityCutover
from .orchestrator import CutoverOrchestrator
from .post_cutover import PostCutoverVerification
from .preflight_coordinator import PreflightValidator
from .rematerialize import ConfigurationRematerializer
from .replication import ReplicationFinalizer
from .rollback import RollbackGuide

__all__ = [
    "PreflightValidator",
    "ReplicationFinalizer",
    "ConfigurationRematerializer",
    "IdentityCutover",
    "PostCutoverVerification",
    "RollbackGuide",
    "ConfigurationExporter",
    "CutoverOrchestrator",
]
