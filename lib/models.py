"""
Data model for SVM cutover.

Records returned by the cluster client and the immutable plan built for one run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from lib.constants import ADMIN_SHARE_NAMES, DYNAMIC_PATH_TOKENS


# REST transfer.state values while a transfer is still running
IN_FLIGHT_TRANSFER_STATES = frozenset({"queued", "preparing", "transferring", "finalizing"})


class RelationshipStatus(Enum):
    """Observed status of a replication relationship."""

    IDLE = "Idle"
    TRANSFERRING = "Transferring"
    QUIESCING = "Quiescing"
    QUIESCED = "Quiesced"
    BROKEN_OFF = "Broken-off"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RelationshipStatus":
        """Parse a status name, ignoring case and '-'/'_' separators."""
        if not value:
            return cls.UNKNOWN
        wanted = value.replace("-", "").replace("_", "").lower()
        for status in cls:
            if status.value.replace("-", "").lower() == wanted:
                return status
        return cls.UNKNOWN

    @classmethod
    def from_rest(cls, state: Optional[str], transfer_state: Optional[str]) -> "RelationshipStatus":
        """Derive the status from REST `state` and `transfer.state` fields."""
        state = (state or "").lower()
        in_flight = (transfer_state or "").lower() in IN_FLIGHT_TRANSFER_STATES

        if state == "broken_off":
            return cls.BROKEN_OFF
        if state in ("paused", "quiesced"):
            if in_flight:
                return cls.QUIESCING
            return cls.QUIESCED
        if in_flight:
            return cls.TRANSFERRING
        if state in ("snapmirrored", "in_sync", "out_of_sync", "synchronizing", "uninitialized"):
            return cls.IDLE
        return cls.parse(state)


@dataclass
class NetworkInterface:
    """A logical network interface (LIF) bound to an SVM."""

    name: str
    svm: str
    address: Optional[str] = None
    netmask: Optional[str] = None
    protocols: List[str] = field(default_factory=list)
    # Plain string on older schemas, list of service names on newer ones
    role: Union[str, List[str], None] = None
    admin_up: bool = True
    uuid: Optional[str] = None

    def describe(self) -> str:
        status = "up" if self.admin_up else "down"
        return f"{self.name} (protocols={self.protocols}, role={self.role}, status={status})"


@dataclass(frozen=True)
class InterfacePair:
    """Source interface whose address moves onto a target interface."""

    source_interface: str
    target_interface: str
    source_address: str
    source_netmask: str


@dataclass
class ReplicationRelationship:
    source_location: str
    destination_location: str
    volume_name: str
    status: RelationshipStatus = RelationshipStatus.UNKNOWN
    uuid: Optional[str] = None


@dataclass
class ClientSession:
    svm: str
    client_address: Optional[str] = None
    user: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class CifsService:
    svm: str
    name: Optional[str] = None
    enabled: bool = False
    uuid: Optional[str] = None


@dataclass
class Volume:
    name: str
    svm: str
    junction_path: Optional[str] = None
    uuid: Optional[str] = None

    @property
    def is_mounted(self) -> bool:
        return bool(self.junction_path)


def is_admin_share(share_name: str) -> bool:
    """Check whether a share is one ONTAP creates on its own."""
    return share_name.lower() in ADMIN_SHARE_NAMES


def is_dynamic_path(path: Optional[str]) -> bool:
    """Check whether a share path contains a user/domain substitution token."""
    if not path:
        return False
    return any(token in path for token in DYNAMIC_PATH_TOKENS)


@dataclass
class ExportedShare:
    """Share captured from the source SVM."""

    share_name: str
    path: str
    comment: Optional[str] = None
    file_umask: Optional[str] = None
    dir_umask: Optional[str] = None
    offline_files: Optional[str] = None
    attribute_cache_ttl: Optional[str] = None
    share_properties: List[str] = field(default_factory=list)
    symlink_properties: List[str] = field(default_factory=list)
    vscan_profile: Optional[str] = None

    @property
    def is_dynamic(self) -> bool:
        return is_dynamic_path(self.path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportedShare":
        return cls(
            share_name=data["share_name"],
            path=data["path"],
            comment=data.get("comment"),
            file_umask=data.get("file_umask"),
            dir_umask=data.get("dir_umask"),
            offline_files=data.get("offline_files"),
            attribute_cache_ttl=data.get("attribute_cache_ttl"),
            share_properties=list(data.get("share_properties") or []),
            symlink_properties=list(data.get("symlink_properties") or []),
            vscan_profile=data.get("vscan_profile"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "share_name": self.share_name,
            "path": self.path,
            "comment": self.comment,
            "file_umask": self.file_umask,
            "dir_umask": self.dir_umask,
            "offline_files": self.offline_files,
            "attribute_cache_ttl": self.attribute_cache_ttl,
            "share_properties": list(self.share_properties),
            "symlink_properties": list(self.symlink_properties),
            "vscan_profile": self.vscan_profile,
        }


@dataclass
class ExportedAcl:
    """ACL entry captured from the source SVM."""

    share_name: str
    user_or_group: str
    permission: str
    user_group_type: str = "windows"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportedAcl":
        return cls(
            share_name=data["share_name"],
            user_or_group=data["user_or_group"],
            permission=data["permission"],
            user_group_type=data.get("user_group_type") or "windows",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "share_name": self.share_name,
            "user_or_group": self.user_or_group,
            "permission": self.permission,
            "user_group_type": self.user_group_type,
        }


@dataclass(frozen=True)
class CutoverPlan:
    """Everything one run acts on. Built once, then read-only."""

    interface_pairs: Tuple[InterfacePair, ...]
    relationships: Tuple[ReplicationRelationship, ...]
    shares: Tuple[ExportedShare, ...]
    acls: Tuple[ExportedAcl, ...]
    simulate: bool = False
    force: bool = False

    @classmethod
    def build(
        cls,
        interface_pairs: Sequence[InterfacePair],
        relationships: Sequence[ReplicationRelationship],
        shares: Sequence[ExportedShare],
        acls: Sequence[ExportedAcl],
        simulate: bool = False,
        force: bool = False,
    ) -> "CutoverPlan":
        return cls(
            interface_pairs=tuple(interface_pairs),
            relationships=tuple(relationships),
            shares=tuple(shares),
            acls=tuple(acls),
            simulate=simulate,
            force=force,
        )


@dataclass
class CutoverSummary:
    """Counts of real changes made during a run, plus errors and dry-run plan."""

    interface_pairs_migrated: int = 0
    relationships_broken: int = 0
    shares_created: int = 0
    acls_applied: int = 0
    errors: List[str] = field(default_factory=list)
    planned_actions: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interfacePairsMigrated": self.interface_pairs_migrated,
            "relationshipsBroken": self.relationships_broken,
            "sharesCreated": self.shares_created,
            "aclsApplied": self.acls_applied,
            "errors": list(self.errors),
        }
