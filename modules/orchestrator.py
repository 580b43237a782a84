"""
SVM cutover orchestration.

Runs the phases in a fixed order: discovery and validation, the active
session check, source service quiesce, replication finalization,
configuration rematerialization, identity cutover and verification.
"""

import time
from typing import Callable, List, Optional, Sequence, Tuple

from lib.context import RunContext
from lib.exceptions import CutoverError, MutationError, PhaseFailedError
from lib.models import CutoverPlan, CutoverSummary, NetworkInterface, ReplicationRelationship
from lib.snapshot import ConfigurationSnapshot
from lib.utils import Phase, format_duration, log_phase_banner

from .discovery import (
    discover_interfaces,
    discover_relationships,
    pair_interfaces,
    resolve_interfaces,
    resolve_relationships,
)
from .export import ConfigurationExporter
from .identity import IdentityCutover
from .post_cutover import PostCutoverVerification
from .preflight_coordinator import PreflightValidator
from .rematerialize import ConfigurationRematerializer
from .replication import FinalizerResult, ReplicationFinalizer
from .rollback import RollbackGuide
from .session_gate import ConfirmFn, check_active_sessions


class CutoverOrchestrator:
    """Drives one cutover run from discovery to verification."""

    def __init__(
        self,
        ctx: RunContext,
        snapshot: Optional[ConfigurationSnapshot] = None,
        interface_pairs: Optional[Sequence[Tuple[str, str]]] = None,
        relationships: Optional[Sequence[str]] = None,
        confirm: Optional[ConfirmFn] = None,
        validate_only: bool = False,
    ) -> None:
        """
        Args:
            ctx: Run context with both cluster clients
            snapshot: Source configuration; captured live when None
            interface_pairs: Explicit (source, target) interface names; discovered when None
            relationships: Explicit destination paths (svm:volume); discovered when None
            confirm: Operator prompt used by the session check
            validate_only: Stop after validation
        """
        self.ctx = ctx
        self.logger = ctx.logger
        self.snapshot = snapshot
        self.interface_pairs = list(interface_pairs) if interface_pairs else None
        self.relationships = list(relationships) if relationships else None
        self.confirm = confirm
        self.validate_only = validate_only

        self.phase = Phase.INIT
        self.plan: Optional[CutoverPlan] = None
        self.finalizer_result = FinalizerResult()
        self.identity = IdentityCutover(ctx)
        self.rematerializer = ConfigurationRematerializer(ctx)

    def run(self) -> CutoverSummary:
        """
        Execute the cutover.

        Errors are recorded in the returned summary; the caller derives the
        exit status from it and from ctx.source_disabled.
        """
        ctx = self.ctx
        start = time.time()
        mode = "DRY-RUN" if ctx.simulate else "LIVE"
        self.logger.info("Cutover %s -> %s (%s)", ctx.source_svm, ctx.target_svm, mode)

        try:
            self._connect()
            self.plan = self.prepare()
            if self.validate_only:
                self.logger.info("\n✓ Validation complete. Exiting (--validate-only mode)")
            else:
                self.execute(self.plan)
                self.phase = Phase.COMPLETED
        except CutoverError as e:
            self._fail(e)
        finally:
            self._disconnect()

        self._log_summary(time.time() - start)
        return ctx.summary

    # =============================
    # Preparation (read-only)
    # =============================
    def prepare(self) -> CutoverPlan:
        """
        Discover, validate and build the plan. Makes no changes.

        Raises:
            PreconditionError: Discovery or validation failed
        """
        ctx = self.ctx

        self._enter(Phase.DISCOVERY, "PHASE 1: DISCOVERY")
        source_interfaces, target_interfaces = self._interfaces()
        relationships = self._relationships()

        snapshot = self.snapshot
        if snapshot is None:
            snapshot = ConfigurationExporter(ctx.source, ctx.source_svm).capture()

        self._enter(Phase.VALIDATION, "PHASE 2: PRE-FLIGHT VALIDATION")
        validator = PreflightValidator(ctx.source, ctx.target, ctx.source_svm, ctx.target_svm)
        validator.validate_all(
            source_interfaces,
            target_interfaces,
            relationships,
            snapshot_volumes=self.snapshot.volumes if self.snapshot is not None else None,
        )

        plan = CutoverPlan.build(
            interface_pairs=pair_interfaces(source_interfaces, target_interfaces),
            relationships=relationships,
            shares=snapshot.shares,
            acls=snapshot.acls,
            simulate=ctx.simulate,
            force=ctx.force,
        )
        self._log_plan(plan)
        return plan

    def _interfaces(self) -> Tuple[List[NetworkInterface], List[NetworkInterface]]:
        ctx = self.ctx
        if self.interface_pairs:
            source = resolve_interfaces(ctx.source, ctx.source_svm, [s for s, _ in self.interface_pairs])
            target = resolve_interfaces(ctx.target, ctx.target_svm, [t for _, t in self.interface_pairs])
            return source, target

        source = discover_interfaces(ctx.source, ctx.source_svm, require_admin_up=True)
        target = discover_interfaces(ctx.target, ctx.target_svm, require_admin_up=False)
        return source, target

    def _relationships(self) -> List[ReplicationRelationship]:
        if self.relationships:
            return resolve_relationships(self.ctx.target, self.relationships)
        return discover_relationships(self.ctx.target, self.ctx.target_svm)

    def _log_plan(self, plan: CutoverPlan) -> None:
        self.logger.info("Cutover plan:")
        for pair in plan.interface_pairs:
            self.logger.info(
                "  interface %s -> %s (%s/%s)",
                pair.source_interface,
                pair.target_interface,
                pair.source_address,
                pair.source_netmask,
            )
        for relationship in plan.relationships:
            self.logger.info("  replication %s (%s)", relationship.destination_location, relationship.status.value)
        self.logger.info("  %s share(s), %s ACL entr(ies)", len(plan.shares), len(plan.acls))

    # =============================
    # Execution
    # =============================
    def execute(self, plan: CutoverPlan) -> None:
        """
        Run the mutating phases in order.

        Raises:
            PhaseFailedError: A phase after the source quiesce recorded errors;
                replication errors already tolerated under force are excepted
            CutoverError: A phase could not complete
        """
        phase_flow: Tuple[Tuple[Phase, str, Callable[[CutoverPlan], None]], ...] = (
            (Phase.SESSION_CHECK, "PHASE 3: ACTIVE SESSION CHECK", self._run_session_check),
            (Phase.SOURCE_QUIESCE, "PHASE 4: SOURCE SERVICE QUIESCE", self._run_source_quiesce),
            (Phase.REPLICATION, "PHASE 5: REPLICATION FINALIZATION", self._run_replication),
            (Phase.REMATERIALIZE, "PHASE 6: CONFIGURATION REMATERIALIZATION", self._run_rematerialize),
            (Phase.IDENTITY, "PHASE 7: IDENTITY CUTOVER", self._run_identity),
            (Phase.VERIFY, "PHASE 8: POST-CUTOVER VERIFICATION", self._run_verify),
        )

        quiesced = False
        for phase, title, handler in phase_flow:
            self._enter(phase, title)
            errors_before = len(self.ctx.summary.errors)
            handler(plan)
            new_errors = len(self.ctx.summary.errors) - errors_before

            if phase is Phase.SOURCE_QUIESCE:
                quiesced = True
            elif quiesced and new_errors:
                if not self._tolerated(phase):
                    raise PhaseFailedError(phase.value, new_errors)
                self.logger.warning("%s error(s) in %s tolerated (--force); continuing", new_errors, phase.value)

            self.logger.info("\n✓ %s complete", phase.value.replace("_", " ").capitalize())

    def _tolerated(self, phase: Phase) -> bool:
        """Relationships the finalizer skipped under force do not stop the run."""
        return phase is Phase.REPLICATION and self.ctx.force

    def _run_session_check(self, plan: CutoverPlan) -> None:
        check_active_sessions(self.ctx, self.confirm)

    def _run_source_quiesce(self, plan: CutoverPlan) -> None:
        self.identity.quiesce_source_service()

    def _run_replication(self, plan: CutoverPlan) -> None:
        self.finalizer_result = ReplicationFinalizer(self.ctx).finalize(plan.relationships)

    def _run_rematerialize(self, plan: CutoverPlan) -> None:
        self.rematerializer.rematerialize(plan.shares, plan.acls, self.finalizer_result.mounted_volumes)

    def _run_identity(self, plan: CutoverPlan) -> None:
        self.identity.migrate(plan.interface_pairs)

    def _run_verify(self, plan: CutoverPlan) -> None:
        PostCutoverVerification(self.ctx).verify(plan.interface_pairs)

    # =============================
    # Helpers
    # =============================
    def _enter(self, phase: Phase, title: str) -> None:
        self.phase = phase
        log_phase_banner(title, self.logger)
        self.logger.debug("Entering phase %s", phase.value, extra={"phase": phase.value})

    def _connect(self) -> None:
        self.logger.info("Connecting to source cluster %s", self.ctx.source.host)
        self.ctx.source.connect()
        self.logger.info("Connecting to target cluster %s", self.ctx.target.host)
        self.ctx.target.connect()

    def _disconnect(self) -> None:
        for client in (self.ctx.source, self.ctx.target):
            try:
                client.disconnect()
            except CutoverError as e:
                self.logger.warning("Error closing session to %s: %s", client, e)

    def _fail(self, error: CutoverError) -> None:
        failed_phase = self.phase
        self.phase = Phase.FAILED

        if not isinstance(error, PhaseFailedError):
            message = str(error)
            if not isinstance(error, MutationError) and not message.startswith("["):
                message = f"[{failed_phase.value}] {self.ctx.source_svm} -> {self.ctx.target_svm}: {message}"
            if message not in self.ctx.summary.errors:
                self.logger.error("✗ %s", message)
                self.ctx.summary.errors.append(message)

        self.logger.error("%s failed; stopping", failed_phase.value.replace("_", " ").capitalize())

        if self.ctx.source_disabled:
            RollbackGuide(self.ctx).log_steps(self.plan, self.rematerializer.created_shares)

    def _log_summary(self, elapsed: float) -> None:
        summary = self.ctx.summary
        log_phase_banner("CUTOVER SUMMARY", self.logger)
        self.logger.info("Interface pairs migrated: %s", summary.interface_pairs_migrated)
        self.logger.info("Relationships broken:     %s", summary.relationships_broken)
        self.logger.info("Shares created:           %s", summary.shares_created)
        self.logger.info("ACLs applied:             %s", summary.acls_applied)
        if self.ctx.simulate:
            self.logger.info("Planned actions (dry-run): %s", len(summary.planned_actions))
        self.logger.info("Duration: %s", format_duration(elapsed))
        if summary.errors:
            self.logger.error("Errors (%s):", len(summary.errors))
            for message in summary.errors:
                self.logger.error("  ✗ %s", message)
