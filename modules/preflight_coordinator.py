"""
Pre-flight validation for SVM cutover.

Runs before any mutation. A critical failure raises PreconditionError.
"""

import logging
from typing import Optional, Sequence

from lib.exceptions import PreconditionError
from lib.models import NetworkInterface, ReplicationRelationship

from .preflight import (
    CifsServiceValidator,
    InterfaceAddressValidator,
    InterfaceCardinalityValidator,
    ReplicationPresenceValidator,
    SnapshotVolumeValidator,
    ValidationReporter,
)

logger = logging.getLogger("svm_cutover")


class PreflightValidator:
    """Coordinates modular pre-flight validation checks."""

    def __init__(self, source_client, target_client, source_svm: str, target_svm: str) -> None:
        self.source = source_client
        self.target = target_client
        self.source_svm = source_svm
        self.target_svm = target_svm

        self.reporter = ValidationReporter()
        self.cardinality_validator = InterfaceCardinalityValidator(self.reporter)
        self.address_validator = InterfaceAddressValidator(self.reporter)
        self.service_validator = CifsServiceValidator(self.reporter)
        self.replication_validator = ReplicationPresenceValidator(self.reporter)
        self.snapshot_volume_validator = SnapshotVolumeValidator(self.reporter)

    def validate_all(
        self,
        source_interfaces: Sequence[NetworkInterface],
        target_interfaces: Sequence[NetworkInterface],
        relationships: Sequence[ReplicationRelationship],
        snapshot_volumes: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Run all checks.

        Raises:
            PreconditionError: One or more critical checks failed
        """
        logger.info("Starting pre-flight validation...")

        self.cardinality_validator.run(source_interfaces, target_interfaces)
        self.address_validator.run(source_interfaces)
        self.service_validator.run(self.source, self.source_svm, "source")
        self.service_validator.run(self.target, self.target_svm, "target")
        self.replication_validator.run(relationships)
        self.snapshot_volume_validator.run(relationships, snapshot_volumes)

        self.reporter.print_summary()

        failures = self.reporter.critical_failures()
        if failures:
            details = "; ".join(f"{f.check}: {f.message}" for f in failures)
            raise PreconditionError(f"[validation] {self.source_svm} -> {self.target_svm}: {details}")
