"""Modular pre-flight validation for SVM cutover."""

from .base_validator import BaseValidator
from .interface_validators import InterfaceAddressValidator, InterfaceCardinalityValidator
from .replication_validators import ReplicationPresenceValidator, SnapshotVolumeValidator
from .reporter import CheckResult, ValidationReporter
from .service_validators import CifsServiceValidator

__all__ = [
    "BaseValidator",
    "CheckResult",
    "ValidationReporter",
    "InterfaceCardinalityValidator",
    "InterfaceAddressValidator",
    "CifsServiceValidator",
    "ReplicationPresenceValidator",
    "SnapshotVolumeValidator",
]
