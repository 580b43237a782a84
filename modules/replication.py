"""
Replication finalization for SVM cutover.

Drives each replication relationship into the target SVM through a final
update, quiesce and break. Status changes happen on the cluster and are only
observed here by polling.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, List, Optional, Sequence, Set

from lib.context import RunContext
from lib.exceptions import MutationError, OntapApiError, PollTimeoutError, TransientError
from lib.models import RelationshipStatus, ReplicationRelationship
from lib.waiter import poll_until

PHASE = "replication"

# Statuses the final sync and the quiesce wait poll through
SYNC_PENDING = frozenset({RelationshipStatus.TRANSFERRING})
QUIESCE_PENDING = frozenset({RelationshipStatus.TRANSFERRING, RelationshipStatus.QUIESCING})


class FinalizerState(Enum):
    ACTIVE = "Active"
    FINAL_SYNCING = "FinalSyncing"
    QUIESCING = "Quiescing"
    QUIESCED = "Quiesced"
    BREAKING = "Breaking"
    BROKEN = "Broken"
    SKIPPED = "Skipped"
    FAILED = "Failed"


@dataclass
class RelationshipOutcome:
    destination: str
    volume_name: str
    state: FinalizerState = FinalizerState.ACTIVE
    transitions: List[FinalizerState] = field(default_factory=lambda: [FinalizerState.ACTIVE])
    auto_mounted: bool = False
    junction_path: Optional[str] = None
    error: Optional[str] = None

    def advance(self, state: FinalizerState) -> None:
        self.state = state
        self.transitions.append(state)


@dataclass
class FinalizerResult:
    outcomes: List[RelationshipOutcome] = field(default_factory=list)

    @property
    def states(self) -> List[FinalizerState]:
        return [o.state for o in self.outcomes]

    @property
    def mounted_volumes(self) -> Set[str]:
        """Volumes the cluster mounted by itself when the relationship broke."""
        return {o.volume_name for o in self.outcomes if o.auto_mounted}

    @property
    def failed(self) -> List[RelationshipOutcome]:
        return [o for o in self.outcomes if o.state is FinalizerState.FAILED]


class ReplicationFinalizer:
    """Final sync, quiesce and break of replication relationships."""

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.client = ctx.target
        self.logger = ctx.logger

    def finalize(self, relationships: Sequence[ReplicationRelationship]) -> FinalizerResult:
        """
        Finalize every relationship in order.

        Returns:
            FinalizerResult with one outcome per relationship

        Raises:
            MutationError: A relationship could not be broken and force is not set
        """
        result = FinalizerResult()
        if not relationships:
            self.logger.warning("No replication relationships to finalize")
            return result

        for relationship in relationships:
            result.outcomes.append(self._finalize_one(relationship))

        broken = sum(1 for o in result.outcomes if o.state is FinalizerState.BROKEN)
        skipped = sum(1 for o in result.outcomes if o.state is FinalizerState.SKIPPED)
        self.logger.info(
            "Replication finalization: %s broken, %s skipped, %s failed", broken, skipped, len(result.failed)
        )
        return result

    def _finalize_one(self, relationship: ReplicationRelationship) -> RelationshipOutcome:
        destination = relationship.destination_location
        outcome = RelationshipOutcome(destination=destination, volume_name=relationship.volume_name)

        try:
            current = self.client.get_replication(destination)
            if current is None:
                self.logger.warning("Replication relationship %s not found; skipping", destination)
                outcome.advance(FinalizerState.SKIPPED)
                return outcome
            if current.status is RelationshipStatus.BROKEN_OFF:
                self.logger.warning("Replication relationship %s is already broken off; skipping", destination)
                outcome.advance(FinalizerState.SKIPPED)
                return outcome

            self.logger.info("Finalizing %s (status: %s)", destination, current.status.value)
            status = current.status

            if status is not RelationshipStatus.QUIESCED:
                outcome.advance(FinalizerState.FINAL_SYNCING)
                if status is RelationshipStatus.TRANSFERRING:
                    status = self._wait_while(destination, SYNC_PENDING, "scheduled transfer")
                self.ctx.mutate(
                    f"start final replication transfer for {destination}",
                    self.client.update_replication,
                    destination,
                )
                status = self._wait_while(destination, SYNC_PENDING, "final transfer", status)

            if status is not RelationshipStatus.QUIESCED:
                outcome.advance(FinalizerState.QUIESCING)
                self.ctx.mutate(f"quiesce replication {destination}", self.client.quiesce_replication, destination)
                self._wait_while(destination, QUIESCE_PENDING, "quiesce")
            outcome.advance(FinalizerState.QUIESCED)

            outcome.advance(FinalizerState.BREAKING)
            self.ctx.mutate(f"break replication {destination}", self.client.break_replication, destination)
            outcome.advance(FinalizerState.BROKEN)

            if not self.ctx.simulate:
                self.ctx.summary.relationships_broken += 1
                self._record_mount(outcome)

        except (OntapApiError, TransientError, PollTimeoutError) as e:
            outcome.advance(FinalizerState.FAILED)
            outcome.error = str(e)
            self.ctx.record_error(PHASE, destination, e)
            if not self.ctx.force:
                raise MutationError(PHASE, destination, str(e))
            self.logger.warning("Continuing with remaining relationships (--force)")

        return outcome

    def _wait_while(
        self,
        destination: str,
        pending: AbstractSet[RelationshipStatus],
        description: str,
        fallback: RelationshipStatus = RelationshipStatus.UNKNOWN,
    ) -> RelationshipStatus:
        """
        Poll until the relationship status is outside pending.

        Transport errors beyond the retry limit are logged and the caller
        moves on with an UNKNOWN status.
        """
        if self.ctx.simulate:
            return fallback

        settings = self.ctx.settings
        try:
            relationship = poll_until(
                f"{description} of {destination}",
                lambda: self.client.get_replication(destination),
                lambda r: r is None or r.status not in pending,
                interval=settings.poll_interval,
                timeout=settings.poll_timeout,
                cancel_event=self.ctx.cancel_event,
                transient_retries=settings.transient_retries,
                logger=self.logger,
            )
        except TransientError as e:
            self.logger.warning(
                "Could not confirm %s of %s after %s retries (%s); continuing",
                description,
                destination,
                settings.transient_retries,
                e,
            )
            return RelationshipStatus.UNKNOWN

        if relationship is None:
            return RelationshipStatus.UNKNOWN
        self.logger.info("%s of %s finished (status: %s)", description.capitalize(), destination, relationship.status.value)
        return relationship.status

    def _record_mount(self, outcome: RelationshipOutcome) -> None:
        """Note whether the broken volume was mounted by the cluster."""
        try:
            volume = self.client.get_volume(self.ctx.target_svm, outcome.volume_name)
        except (OntapApiError, TransientError) as e:
            self.logger.warning("Could not read junction path of %s: %s", outcome.volume_name, e)
            return

        if volume is not None and volume.is_mounted:
            outcome.auto_mounted = True
            outcome.junction_path = volume.junction_path
            self.logger.info("Volume %s is mounted at %s", outcome.volume_name, volume.junction_path)
        else:
            self.logger.info("Volume %s is not mounted after break", outcome.volume_name)
