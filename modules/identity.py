"""
Identity cutover for SVM cutover.

Takes the CIFS identity off the source SVM and moves each source interface
address onto its paired target interface.
"""

import time
from typing import Callable, Sequence

from lib.context import RunContext
from lib.exceptions import MutationError, OntapApiError, PreconditionError, TransientError
from lib.models import InterfacePair, NetworkInterface

PHASE = "identity"
SOURCE_QUIESCE_PHASE = "source_quiesce"


class IdentityCutover:
    """Source service quiesce and interface address migration."""

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.logger = ctx.logger

    def quiesce_source_service(self) -> None:
        """
        Disable the CIFS service on the source SVM.

        Raises:
            PreconditionError: The source SVM has no CIFS service
            OntapApiError: The service could not be disabled
        """
        source_svm = self.ctx.source_svm
        service = self.ctx.source.get_cifs_service(source_svm)
        if service is None:
            raise PreconditionError(f"[{SOURCE_QUIESCE_PHASE}] {source_svm}: no CIFS service configured")

        if not service.enabled:
            self.logger.info("CIFS service on %s is already disabled", source_svm)
            self.ctx.source_disabled = True
            return

        self.ctx.mutate(
            f"disable CIFS service on {source_svm}",
            self.ctx.source.set_cifs_service_enabled,
            source_svm,
            False,
        )
        if not self.ctx.simulate:
            self.ctx.source_disabled = True
            self.logger.info("✓ CIFS service on %s disabled", source_svm)

    def migrate(self, pairs: Sequence[InterfacePair]) -> int:
        """
        Move every source address onto its target interface.

        A failing pair is recorded and the remaining pairs are still
        processed.

        Returns:
            Number of pairs that failed
        """
        failures = 0
        for pair in pairs:
            resource = f"{pair.source_interface} -> {pair.target_interface}"
            try:
                self.migrate_pair(pair)
            except MutationError as e:
                failures += 1
                self.ctx.record_error(e.phase, e.resource, e.reason)
            except (OntapApiError, TransientError) as e:
                failures += 1
                self.ctx.record_error(PHASE, resource, e)

        migrated = len(pairs) - failures
        self.logger.info("Interface migration: %s of %s pair(s) completed", migrated, len(pairs))
        return failures

    def migrate_pair(self, pair: InterfacePair) -> None:
        """
        Source down, target down, set address, target up.

        Raises:
            MutationError: A step failed or was not confirmed; if the address
                change failed the target interface is re-enabled first
        """
        source, target = self.ctx.source, self.ctx.target
        source_svm, target_svm = self.ctx.source_svm, self.ctx.target_svm
        resource = f"{pair.source_interface} -> {pair.target_interface}"

        current = source.get_interface(source_svm, pair.source_interface)
        if current is None:
            raise MutationError(PHASE, resource, f"source interface {pair.source_interface} not found")

        if current.admin_up:
            self.ctx.mutate(
                f"bring source interface {source_svm}:{pair.source_interface} down",
                source.set_interface,
                source_svm,
                pair.source_interface,
                admin_up=False,
            )
            self._confirm(source, source_svm, pair.source_interface, lambda i: not i.admin_up, "down")
        else:
            self.logger.info("Source interface %s is already down", pair.source_interface)

        self.ctx.mutate(
            f"bring target interface {target_svm}:{pair.target_interface} down",
            target.set_interface,
            target_svm,
            pair.target_interface,
            admin_up=False,
        )
        self._confirm(target, target_svm, pair.target_interface, lambda i: not i.admin_up, "down")

        try:
            self.ctx.mutate(
                f"set address {pair.source_address}/{pair.source_netmask} on target interface "
                f"{target_svm}:{pair.target_interface}",
                target.set_interface,
                target_svm,
                pair.target_interface,
                address=pair.source_address,
                netmask=pair.source_netmask,
            )
            self._confirm(
                target,
                target_svm,
                pair.target_interface,
                lambda i: i.address == pair.source_address,
                f"at {pair.source_address}",
            )
        except (OntapApiError, TransientError, MutationError) as e:
            self._reenable_target(pair)
            reason = e.reason if isinstance(e, MutationError) else str(e)
            raise MutationError(PHASE, resource, f"address change failed: {reason}")

        self.ctx.mutate(
            f"bring target interface {target_svm}:{pair.target_interface} up",
            target.set_interface,
            target_svm,
            pair.target_interface,
            admin_up=True,
        )
        self._confirm(target, target_svm, pair.target_interface, lambda i: i.admin_up, "up")

        if not self.ctx.simulate:
            self.ctx.summary.interface_pairs_migrated += 1
            self.logger.info("✓ %s now answers on %s", pair.target_interface, pair.source_address)

    def _reenable_target(self, pair: InterfacePair) -> None:
        """Bring the target interface back up with its old address."""
        try:
            self.ctx.mutate(
                f"re-enable target interface {self.ctx.target_svm}:{pair.target_interface}",
                self.ctx.target.set_interface,
                self.ctx.target_svm,
                pair.target_interface,
                admin_up=True,
            )
        except (OntapApiError, TransientError) as e:
            self.logger.error("Could not re-enable target interface %s: %s", pair.target_interface, e)

    def _confirm(
        self,
        client,
        svm: str,
        name: str,
        predicate: Callable[[NetworkInterface], bool],
        expectation: str,
    ) -> None:
        """Re-read an interface after the settle delay and check the change took."""
        if self.ctx.simulate:
            return

        time.sleep(self.ctx.settings.settle_delay)
        interface = client.get_interface(svm, name)
        if interface is None:
            raise MutationError(PHASE, f"{svm}:{name}", "interface disappeared")
        if not predicate(interface):
            raise MutationError(
                PHASE, f"{svm}:{name}", f"not {expectation} after {self.ctx.settings.settle_delay}s ({interface.describe()})"
            )
        self.logger.debug("%s:%s is %s", svm, name, expectation)
