"""
Post-cutover verification.

Checks that the target SVM serves CIFS and that each target interface is up
on the address it took over.
"""

from typing import Sequence

from lib.context import RunContext
from lib.exceptions import OntapApiError, TransientError
from lib.models import InterfacePair

PHASE = "verify"


class PostCutoverVerification:
    """Read-only checks on the target after identity cutover."""

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.target = ctx.target
        self.logger = ctx.logger

    def verify(self, pairs: Sequence[InterfacePair]) -> bool:
        """
        Returns:
            True if all verifications passed
        """
        if self.ctx.simulate:
            self.logger.info("[DRY-RUN] Would verify CIFS service and %s interface(s) on %s", len(pairs), self.ctx.target_svm)
            return True

        errors_before = len(self.ctx.summary.errors)
        try:
            self._verify_service()
            for pair in pairs:
                self._verify_interface(pair)
        except (OntapApiError, TransientError) as e:
            self.ctx.record_error(PHASE, self.ctx.target_svm, f"verification read failed: {e}")

        passed = len(self.ctx.summary.errors) == errors_before
        if passed:
            self.logger.info("✓ Target %s is serving CIFS on all migrated addresses", self.ctx.target_svm)
        return passed

    def _verify_service(self) -> None:
        service = self.target.get_cifs_service(self.ctx.target_svm)
        if service is None:
            self.ctx.record_error(PHASE, self.ctx.target_svm, "no CIFS service configured")
        elif not service.enabled:
            self.ctx.record_error(PHASE, self.ctx.target_svm, "CIFS service is not running")
        else:
            self.logger.info("✓ CIFS service %s is running on %s", service.name, self.ctx.target_svm)

    def _verify_interface(self, pair: InterfacePair) -> None:
        resource = f"{self.ctx.target_svm}:{pair.target_interface}"
        interface = self.target.get_interface(self.ctx.target_svm, pair.target_interface)
        if interface is None:
            self.ctx.record_error(PHASE, resource, "interface not found")
            return
        if not interface.admin_up:
            self.ctx.record_error(PHASE, resource, "interface is down")
        if interface.address != pair.source_address:
            self.ctx.record_error(PHASE, resource, f"address is {interface.address}, expected {pair.source_address}")
