"""
Configuration snapshot files.

A snapshot directory holds the source SVM's shares, share ACLs and volume
names as JSON documents, captured before the cutover.
"""

import json
import logging
import os
import stat
from dataclasses import dataclass, field
from typing import Any, List

from lib.constants import SNAPSHOT_ACLS_FILE, SNAPSHOT_SHARES_FILE, SNAPSHOT_VOLUMES_FILE
from lib.exceptions import ConfigurationError, ValidationError
from lib.models import ExportedAcl, ExportedShare
from lib.validation import InputValidator

logger = logging.getLogger("svm_cutover")


@dataclass
class ConfigurationSnapshot:
    """Shares, ACLs and volume names of one SVM."""

    shares: List[ExportedShare] = field(default_factory=list)
    acls: List[ExportedAcl] = field(default_factory=list)
    volumes: List[str] = field(default_factory=list)


def _read_json(directory: str, filename: str) -> Any:
    path = os.path.join(directory, filename)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Snapshot file missing: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Snapshot file {path} is not valid JSON: {e}")


def load_snapshot(directory: str) -> ConfigurationSnapshot:
    """
    Load a configuration snapshot directory.

    Args:
        directory: Directory containing shares.json, acls.json and volumes.json

    Returns:
        ConfigurationSnapshot with parsed shares, ACLs and volume names

    Raises:
        ConfigurationError: If a file is missing, unreadable or malformed
    """
    raw_shares = _read_json(directory, SNAPSHOT_SHARES_FILE)
    raw_acls = _read_json(directory, SNAPSHOT_ACLS_FILE)
    raw_volumes = _read_json(directory, SNAPSHOT_VOLUMES_FILE)

    try:
        shares = [ExportedShare.from_dict(item) for item in raw_shares]
        acls = [ExportedAcl.from_dict(item) for item in raw_acls]
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Snapshot in {directory} has a malformed entry: {e}")

    for share in shares:
        try:
            InputValidator.validate_share_name(share.share_name)
        except ValidationError as e:
            raise ConfigurationError(f"Snapshot in {directory}: {e}")

    # Accept a plain list of names or a list of {"name": ...} objects
    volumes = [item["name"] if isinstance(item, dict) else str(item) for item in raw_volumes]

    logger.info(
        "Loaded snapshot from %s: %s share(s), %s ACL(s), %s volume(s)",
        directory,
        len(shares),
        len(acls),
        len(volumes),
    )
    return ConfigurationSnapshot(shares=shares, acls=acls, volumes=volumes)


def _write_json(directory: str, filename: str, data: Any) -> None:
    path = os.path.join(directory, filename)
    # Restrictive permissions (owner read/write only)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def write_snapshot(directory: str, snapshot: ConfigurationSnapshot) -> None:
    """Write a snapshot in the layout load_snapshot() reads."""
    os.makedirs(directory, exist_ok=True)
    _write_json(directory, SNAPSHOT_SHARES_FILE, [s.to_dict() for s in snapshot.shares])
    _write_json(directory, SNAPSHOT_ACLS_FILE, [a.to_dict() for a in snapshot.acls])
    _write_json(directory, SNAPSHOT_VOLUMES_FILE, sorted(snapshot.volumes))
    logger.info("Snapshot written to %s", directory)
