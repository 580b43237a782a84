"""
Discovery of CIFS data interfaces and replication relationships.

ONTAP reports interface protocols and roles differently across API schema
versions (a 'data' role string, a list of service names such as
'data_cifs', ...). Matching is therefore expressed as an ordered list of
rules, each a pair of predicates, and the first rule that matches anything
wins.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from lib.exceptions import PreconditionError
from lib.models import InterfacePair, NetworkInterface, RelationshipStatus, ReplicationRelationship

logger = logging.getLogger("svm_cutover")


class MatchKind(Enum):
    EXACT = "exact"
    MEMBER = "member"
    SUBSTRING = "substring"


def _entries(value: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize a string or list field to lowercase entries."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value.lower()]
    return [str(v).lower() for v in value]


@dataclass(frozen=True)
class FieldPredicate:
    """
    Test one interface field against a set of accepted values.

    EXACT matches a scalar field equal to one of the values, MEMBER matches a
    list field containing one of them, SUBSTRING matches any entry containing
    one of them. Comparisons ignore case.
    """

    kind: MatchKind
    values: Tuple[str, ...]

    def matches(self, value: Union[str, Iterable[str], None]) -> bool:
        accepted = [v.lower() for v in self.values]

        if self.kind is MatchKind.EXACT:
            if isinstance(value, str):
                return value.lower() in accepted
            entries = _entries(value)
            return len(entries) == 1 and entries[0] in accepted

        entries = _entries(value)
        if self.kind is MatchKind.MEMBER:
            return any(entry in accepted for entry in entries)
        return any(wanted in entry for entry in entries for wanted in accepted)


@dataclass(frozen=True)
class MatchRule:
    name: str
    protocol: FieldPredicate
    role: FieldPredicate

    def matches(self, interface: NetworkInterface) -> bool:
        return self.protocol.matches(interface.protocols) and self.role.matches(interface.role)


CIFS_PROTOCOL_NAMES = ("cifs", "smb", "data_cifs")

DEFAULT_RULES: Tuple[MatchRule, ...] = (
    MatchRule(
        "exact",
        FieldPredicate(MatchKind.MEMBER, CIFS_PROTOCOL_NAMES),
        FieldPredicate(MatchKind.EXACT, ("data",)),
    ),
    MatchRule(
        "membership",
        FieldPredicate(MatchKind.MEMBER, CIFS_PROTOCOL_NAMES),
        FieldPredicate(MatchKind.MEMBER, ("data", "data_core")),
    ),
    MatchRule(
        "substring",
        FieldPredicate(MatchKind.SUBSTRING, ("cifs", "smb")),
        FieldPredicate(MatchKind.SUBSTRING, ("data",)),
    ),
)


@dataclass
class InterfaceMatcher:
    """Ordered rules; the first rule that selects at least one interface wins."""

    rules: Sequence[MatchRule] = field(default_factory=lambda: DEFAULT_RULES)

    def select(self, interfaces: Sequence[NetworkInterface]) -> Tuple[Optional[str], List[NetworkInterface]]:
        for rule in self.rules:
            selected = [i for i in interfaces if rule.matches(i)]
            if selected:
                return rule.name, selected
        return None, []


def discover_interfaces(
    client,
    svm: str,
    require_admin_up: bool,
    matcher: Optional[InterfaceMatcher] = None,
) -> List[NetworkInterface]:
    """
    Find the CIFS data interfaces of an SVM.

    Args:
        client: Cluster client
        svm: SVM name
        require_admin_up: Only keep administratively up interfaces (source side)
        matcher: Matching rules (defaults to DEFAULT_RULES)

    Returns:
        Matching interfaces sorted by name

    Raises:
        PreconditionError: No interface matched; the message lists every
            interface found on the SVM
    """
    matcher = matcher or InterfaceMatcher()
    interfaces = client.list_interfaces(svm)
    candidates = [i for i in interfaces if i.admin_up] if require_admin_up else list(interfaces)

    rule_name, selected = matcher.select(candidates)
    if not selected:
        found = "; ".join(i.describe() for i in interfaces) or "none"
        qualifier = "administratively up " if require_admin_up else ""
        raise PreconditionError(
            f"[discovery] {svm}: no {qualifier}CIFS data interfaces found. Interfaces on SVM: {found}"
        )

    logger.info(
        "Discovered %s CIFS interface(s) on %s (rule: %s): %s",
        len(selected),
        svm,
        rule_name,
        ", ".join(i.name for i in selected),
    )
    return sorted(selected, key=lambda i: i.name)


def resolve_interfaces(client, svm: str, names: Sequence[str]) -> List[NetworkInterface]:
    """
    Look up explicitly named interfaces.

    Raises:
        PreconditionError: A named interface does not exist
    """
    by_name = {i.name: i for i in client.list_interfaces(svm)}
    missing = [n for n in names if n not in by_name]
    if missing:
        raise PreconditionError(f"[discovery] {svm}: interface(s) not found: {', '.join(missing)}")
    return [by_name[n] for n in names]


def pair_interfaces(
    source: Sequence[NetworkInterface], target: Sequence[NetworkInterface]
) -> List[InterfacePair]:
    """Pair source and target interfaces position by position."""
    if len(source) != len(target):
        raise PreconditionError(
            f"[validation] interface count mismatch: {len(source)} source vs {len(target)} target"
        )

    pairs = []
    for src, tgt in zip(source, target):
        if not src.address or not src.netmask:
            raise PreconditionError(f"[validation] {src.svm}:{src.name}: source interface has no address/netmask")
        pairs.append(
            InterfacePair(
                source_interface=src.name,
                target_interface=tgt.name,
                source_address=src.address,
                source_netmask=src.netmask,
            )
        )
    return pairs


def discover_relationships(client, target_svm: str) -> List[ReplicationRelationship]:
    """
    Find relationships replicating into the target SVM that are not broken off.

    An empty result is only a warning: the volumes may already have been
    broken manually.
    """
    prefix = f"{target_svm}:"
    selected = []
    for relationship in client.list_replications():
        if not relationship.destination_location.startswith(prefix):
            continue
        if relationship.status is RelationshipStatus.BROKEN_OFF:
            logger.debug("Ignoring broken-off relationship %s", relationship.destination_location)
            continue
        relationship.volume_name = relationship.destination_location.split(":", 1)[1]
        selected.append(relationship)

    if not selected:
        logger.warning(
            "No active replication relationships found for SVM %s; replication steps will be skipped",
            target_svm,
        )
    else:
        logger.info(
            "Discovered %s replication relationship(s) into %s: %s",
            len(selected),
            target_svm,
            ", ".join(r.volume_name for r in selected),
        )
    return selected


def resolve_relationships(client, destinations: Sequence[str]) -> List[ReplicationRelationship]:
    """
    Look up explicitly named relationships.

    Destinations without a relationship are returned with status UNKNOWN so
    the finalizer can report them as skipped.
    """
    relationships = []
    for destination in destinations:
        relationship = client.get_replication(destination)
        if relationship is None:
            logger.warning("No replication relationship found for %s", destination)
            relationship = ReplicationRelationship(
                source_location="",
                destination_location=destination,
                volume_name=destination.partition(":")[2],
            )
        relationships.append(relationship)
    return relationships
