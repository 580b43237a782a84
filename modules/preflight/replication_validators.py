"""Replication checks against the configuration snapshot."""

import logging
from typing import Optional, Sequence

from lib.models import ReplicationRelationship

from .base_validator import BaseValidator

logger = logging.getLogger("svm_cutover")


class ReplicationPresenceValidator(BaseValidator):
    """Warn when there is nothing to replicate."""

    check_name = "Replication relationships"
    critical = False

    def run(self, relationships: Sequence[ReplicationRelationship]) -> None:
        if relationships:
            self.add_result(True, f"{len(relationships)} relationship(s) to finalize")
        else:
            self.add_result(False, "none found; replication steps will be skipped")


class SnapshotVolumeValidator(BaseValidator):
    """
    Compare replicated volumes with the volumes recorded in the snapshot.

    Differences are an operator signal, not an error: non-CIFS volumes may be
    replicated without being exported.
    """

    check_name = "Snapshot volume cross-check"
    critical = False

    def run(
        self,
        relationships: Sequence[ReplicationRelationship],
        snapshot_volumes: Optional[Sequence[str]],
    ) -> None:
        if snapshot_volumes is None:
            logger.debug("No snapshot volume list supplied; skipping cross-check")
            return

        replicated = {r.volume_name for r in relationships}
        recorded = set(snapshot_volumes)
        both = sorted(replicated & recorded)
        only_replicated = sorted(replicated - recorded)
        only_recorded = sorted(recorded - replicated)

        logger.info("Volumes in replication and snapshot: %s", ", ".join(both) or "none")
        logger.info("Volumes only in replication data: %s", ", ".join(only_replicated) or "none")
        logger.info("Volumes only in snapshot: %s", ", ".join(only_recorded) or "none")

        self.add_result(
            not only_replicated and not only_recorded,
            f"{len(both)} matched, {len(only_replicated)} only replicated, {len(only_recorded)} only in snapshot",
        )
