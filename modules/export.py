"""
Capture of the source SVM's CIFS configuration.

Read-only. Used by --export-config and, when no snapshot directory is
given, by the orchestrator before it changes anything.
"""

import logging
from typing import List, Optional

from lib.models import ExportedAcl, is_admin_share
from lib.snapshot import ConfigurationSnapshot, write_snapshot

logger = logging.getLogger("svm_cutover")


class ConfigurationExporter:
    """Reads shares, ACLs and volume names from one SVM."""

    def __init__(self, client, svm: str) -> None:
        self.client = client
        self.svm = svm

    def capture(self) -> ConfigurationSnapshot:
        logger.info("Capturing CIFS configuration of %s from %s", self.svm, self.client)

        shares = [s for s in self.client.list_shares(self.svm) if not is_admin_share(s.share_name)]

        acls: List[ExportedAcl] = []
        for share in shares:
            acls.extend(self.client.list_share_acls(self.svm, share.share_name))

        volumes = sorted(v.name for v in self.client.list_volumes(self.svm))

        logger.info("Captured %s share(s), %s ACL(s), %s volume(s)", len(shares), len(acls), len(volumes))
        return ConfigurationSnapshot(shares=shares, acls=acls, volumes=volumes)

    def export(self, directory: Optional[str] = None) -> ConfigurationSnapshot:
        """Capture the configuration and write it to directory if given."""
        snapshot = self.capture()
        if directory:
            write_snapshot(directory, snapshot)
        return snapshot
