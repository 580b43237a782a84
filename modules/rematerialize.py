"""
Configuration rematerialization on the target SVM.

Mounts the volumes shares live on, recreates the shares and their
properties, then applies the exported ACLs. Safe to re-run: existing
mounts and shares are left alone.
"""

from typing import AbstractSet, List, Sequence, Set

from lib import zapi
from lib.constants import (
    DEFAULT_PRINCIPAL_TYPE,
    DEFAULT_SHARE_PRINCIPAL,
    EREST_ACL_ALREADY_EXISTS,
    EREST_DUPLICATE_ENTRY,
    EREST_ENTRY_NOT_FOUND,
)
from lib.context import RunContext
from lib.exceptions import OntapApiError, TransientError
from lib.models import ExportedAcl, ExportedShare, is_admin_share

from .share_properties import translate_share

PHASE = "rematerialize"


def required_junction_volumes(shares: Sequence[ExportedShare]) -> List[str]:
    """
    Volumes that must be mounted for the shares to resolve.

    Taken from the first path segment of every non-dynamic share; a
    dynamic share's path is resolved per user and needs no junction.
    """
    volumes: List[str] = []
    for share in shares:
        if share.is_dynamic or is_admin_share(share.share_name):
            continue
        segments = [s for s in share.path.replace("\\", "/").split("/") if s]
        if segments and segments[0] not in volumes:
            volumes.append(segments[0])
    return volumes


class ConfigurationRematerializer:
    """Recreates CIFS configuration on the target SVM."""

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.client = ctx.target
        self.svm = ctx.target_svm
        self.logger = ctx.logger
        self.created_shares: List[str] = []

    def rematerialize(
        self,
        shares: Sequence[ExportedShare],
        acls: Sequence[ExportedAcl],
        mounted_volumes: AbstractSet[str] = frozenset(),
    ) -> int:
        """
        Mount volumes, create shares, apply ACLs.

        Returns:
            Number of errors recorded during this phase
        """
        errors_before = len(self.ctx.summary.errors)

        self.mount_volumes(shares, mounted_volumes)
        present = self.create_shares(shares)
        self.apply_acls(acls, present)

        return len(self.ctx.summary.errors) - errors_before

    def mount_volumes(self, shares: Sequence[ExportedShare], mounted_volumes: AbstractSet[str] = frozenset()) -> None:
        volumes = required_junction_volumes(shares)
        self.logger.info("Volumes required by shares: %s", ", ".join(volumes) or "none")

        for name in volumes:
            if name in mounted_volumes:
                self.logger.info("Volume %s was mounted when its relationship broke", name)
                continue

            junction_path = f"/{name}"
            try:
                volume = self.client.get_volume(self.svm, name)
                if volume is None:
                    self.ctx.record_error(PHASE, f"{self.svm}:{name}", "volume not found on target")
                    continue
                if volume.is_mounted:
                    self.logger.info("Volume %s already mounted at %s", name, volume.junction_path)
                    continue

                self.ctx.mutate(
                    f"mount volume {name} at {junction_path}",
                    self.client.mount_volume,
                    self.svm,
                    name,
                    junction_path,
                )
            except (OntapApiError, TransientError) as e:
                self.ctx.record_error(PHASE, f"{self.svm}:{name}", f"mount failed: {e}")

    def create_shares(self, shares: Sequence[ExportedShare]) -> Set[str]:
        """
        Create missing shares.

        Returns:
            Lowercased names of shares present on the target afterwards
            (including planned ones in simulate mode)
        """
        existing = {s.share_name.lower() for s in self.client.list_shares(self.svm)}
        present = set(existing)

        for share in shares:
            if is_admin_share(share.share_name):
                self.logger.debug("Skipping administrative share %s", share.share_name)
                continue
            if share.share_name.lower() in existing:
                self.logger.warning("Share %s already exists on %s; skipping", share.share_name, self.svm)
                continue

            try:
                self.ctx.mutate(
                    f"create share {share.share_name} at {share.path}",
                    self.client.create_share,
                    self.svm,
                    share.share_name,
                    share.path,
                    comment=share.comment,
                    file_umask=share.file_umask,
                    dir_umask=share.dir_umask,
                    offline_files=share.offline_files,
                    attribute_cache_ttl=share.attribute_cache_ttl,
                    home_directory=share.is_dynamic,
                )
            except (OntapApiError, TransientError) as e:
                self.ctx.record_error(PHASE, f"share {share.share_name}", f"create failed: {e}")
                continue

            present.add(share.share_name.lower())
            if not self.ctx.simulate:
                self.ctx.summary.shares_created += 1
                self.created_shares.append(share.share_name)

            self._apply_legacy_properties(share)
            self._remove_default_acl(share)

        return present

    def _apply_legacy_properties(self, share: ExportedShare) -> None:
        """Best effort: a failure here leaves a working share with default settings."""
        settings = self.ctx.settings
        translation = translate_share(
            share,
            apply_symlink_properties=settings.apply_symlink_properties,
            apply_vscan_profile=settings.apply_vscan_profile,
        )
        if not translation.has_legacy_changes:
            return

        envelope = zapi.share_modify_envelope(
            self.svm,
            share.share_name,
            translation.share_properties,
            symlink_properties=translation.symlink_properties,
            vscan_profile=translation.vscan_profile,
        )
        try:
            self.ctx.mutate(
                f"set properties [{', '.join(translation.share_properties)}] on share {share.share_name}",
                self.client.invoke_legacy_command,
                envelope,
            )
        except (OntapApiError, TransientError) as e:
            self.logger.warning("Share %s: could not apply properties: %s", share.share_name, e)

    def _remove_default_acl(self, share: ExportedShare) -> None:
        try:
            self.ctx.mutate(
                f"remove default {DEFAULT_SHARE_PRINCIPAL} ACL from share {share.share_name}",
                self.client.remove_share_acl,
                self.svm,
                share.share_name,
                DEFAULT_SHARE_PRINCIPAL,
                DEFAULT_PRINCIPAL_TYPE,
            )
        except OntapApiError as e:
            if e.code == EREST_ENTRY_NOT_FOUND:
                self.logger.debug("Share %s has no default %s ACL", share.share_name, DEFAULT_SHARE_PRINCIPAL)
            else:
                self.logger.warning("Share %s: could not remove default ACL: %s", share.share_name, e)
        except TransientError as e:
            self.logger.warning("Share %s: could not remove default ACL: %s", share.share_name, e)

    def apply_acls(self, acls: Sequence[ExportedAcl], present: AbstractSet[str]) -> None:
        """Add every ACL entry whose share exists; entries are additive."""
        for acl in acls:
            resource = f"share {acl.share_name} ACL {acl.user_or_group}"
            if is_admin_share(acl.share_name):
                continue
            if acl.share_name.lower() not in present:
                self.logger.warning("Share %s not present on %s; skipping ACL for %s", acl.share_name, self.svm, acl.user_or_group)
                continue

            try:
                self.ctx.mutate(
                    f"grant {acl.permission} on share {acl.share_name} to {acl.user_or_group}",
                    self.client.add_share_acl,
                    self.svm,
                    acl.share_name,
                    acl.user_or_group,
                    acl.user_group_type,
                    acl.permission,
                )
            except OntapApiError as e:
                if e.code in (EREST_DUPLICATE_ENTRY, EREST_ACL_ALREADY_EXISTS):
                    self.logger.info("ACL for %s on share %s already present", acl.user_or_group, acl.share_name)
                else:
                    self.ctx.record_error(PHASE, resource, f"add failed: {e}")
                continue
            except TransientError as e:
                self.ctx.record_error(PHASE, resource, f"add failed: {e}")
                continue

            if not self.ctx.simulate:
                self.ctx.summary.acls_applied += 1
