"""Unit tests for modules/discovery.py."""

import pytest

from conftest import SOURCE_SVM, TARGET_SVM, make_interface
from lib.exceptions import PreconditionError
from lib.models import RelationshipStatus, ReplicationRelationship
from modules.discovery import (
    FieldPredicate,
    InterfaceMatcher,
    MatchKind,
    discover_interfaces,
    discover_relationships,
    pair_interfaces,
    resolve_interfaces,
    resolve_relationships,
)


def _relationship(destination, status=RelationshipStatus.IDLE):
    return ReplicationRelationship(
        source_location=destination.replace(TARGET_SVM, SOURCE_SVM),
        destination_location=destination,
        volume_name="",
        status=status,
    )


@pytest.mark.unit
class TestFieldPredicate:
    def test_exact_is_case_insensitive(self):
        assert FieldPredicate(MatchKind.EXACT, ("data",)).matches("DATA")

    def test_exact_rejects_multi_entry_list(self):
        assert not FieldPredicate(MatchKind.EXACT, ("data",)).matches(["data", "mgmt"])

    def test_member(self):
        predicate = FieldPredicate(MatchKind.MEMBER, ("data_core",))
        assert predicate.matches(["data_cifs", "Data_Core"])
        assert not predicate.matches(["data_nfs"])

    def test_substring(self):
        predicate = FieldPredicate(MatchKind.SUBSTRING, ("cifs",))
        assert predicate.matches(["data_cifs_server"])
        assert not predicate.matches(None)


@pytest.mark.unit
class TestDiscoverInterfaces:
    def test_protocol_and_role_match_ignores_case(self, mock_source_client):
        upper = make_interface("lif_upper", protocols=["CIFS"], role="DATA")
        lower = make_interface("lif_lower", protocols=["cifs"], role="data")
        mock_source_client.list_interfaces.return_value = [upper, lower]

        selected = discover_interfaces(mock_source_client, SOURCE_SVM, require_admin_up=True)

        assert [i.name for i in selected] == ["lif_lower", "lif_upper"]

    def test_same_result_for_any_casing(self, mock_source_client):
        results = []
        for protocols, role in ((["CIFS"], "DATA"), (["cifs"], "data"), (["Cifs"], "Data")):
            mock_source_client.list_interfaces.return_value = [make_interface("lif1", protocols=protocols, role=role)]
            results.append([i.name for i in discover_interfaces(mock_source_client, SOURCE_SVM, True)])

        assert results == [["lif1"], ["lif1"], ["lif1"]]

    def test_falls_back_to_service_list_schema(self, mock_source_client):
        lif = make_interface("lif1", protocols=["data_cifs", "data_core"], role=["data_cifs", "data_core"])
        mgmt = make_interface("mgmt1", protocols=["management_https"], role=["management_https"])
        mock_source_client.list_interfaces.return_value = [mgmt, lif]

        rule, selected = InterfaceMatcher().select([mgmt, lif])

        assert rule == "membership"
        assert selected == [lif]

    def test_admin_down_source_interfaces_are_ignored(self, mock_source_client):
        mock_source_client.list_interfaces.return_value = [
            make_interface("lif_up"),
            make_interface("lif_down", admin_up=False),
        ]

        selected = discover_interfaces(mock_source_client, SOURCE_SVM, require_admin_up=True)

        assert [i.name for i in selected] == ["lif_up"]

    def test_target_keeps_admin_down_interfaces(self, mock_target_client):
        mock_target_client.list_interfaces.return_value = [make_interface("lif_dr1", svm=TARGET_SVM, admin_up=False)]

        selected = discover_interfaces(mock_target_client, TARGET_SVM, require_admin_up=False)

        assert [i.name for i in selected] == ["lif_dr1"]

    def test_no_match_lists_every_interface(self, mock_source_client):
        mock_source_client.list_interfaces.return_value = [
            make_interface("nfs1", protocols=["nfs"], role="data"),
            make_interface("mgmt1", protocols=[], role="node_mgmt"),
        ]

        with pytest.raises(PreconditionError) as exc_info:
            discover_interfaces(mock_source_client, SOURCE_SVM, require_admin_up=True)

        message = str(exc_info.value)
        assert "[discovery]" in message
        assert "nfs1" in message
        assert "mgmt1" in message


@pytest.mark.unit
class TestResolveAndPair:
    def test_resolve_keeps_requested_order(self, mock_source_client):
        mock_source_client.list_interfaces.return_value = [make_interface("a"), make_interface("b")]

        resolved = resolve_interfaces(mock_source_client, SOURCE_SVM, ["b", "a"])

        assert [i.name for i in resolved] == ["b", "a"]

    def test_resolve_missing_interface(self, mock_source_client):
        mock_source_client.list_interfaces.return_value = [make_interface("a")]

        with pytest.raises(PreconditionError, match="missing"):
            resolve_interfaces(mock_source_client, SOURCE_SVM, ["a", "missing"])

    def test_pair_by_position(self):
        source = [make_interface("lif1", address="10.0.0.1"), make_interface("lif2", address="10.0.0.2")]
        target = [make_interface("dr1", svm=TARGET_SVM), make_interface("dr2", svm=TARGET_SVM)]

        pairs = pair_interfaces(source, target)

        assert [(p.source_interface, p.target_interface, p.source_address) for p in pairs] == [
            ("lif1", "dr1", "10.0.0.1"),
            ("lif2", "dr2", "10.0.0.2"),
        ]

    def test_pair_count_mismatch(self):
        with pytest.raises(PreconditionError, match="mismatch"):
            pair_interfaces([make_interface("lif1"), make_interface("lif2")], [make_interface("dr1")])

    def test_pair_requires_source_address(self):
        with pytest.raises(PreconditionError, match="no address"):
            pair_interfaces([make_interface("lif1", address=None)], [make_interface("dr1")])


@pytest.mark.unit
class TestDiscoverRelationships:
    def test_broken_off_is_never_selected(self, mock_target_client):
        mock_target_client.list_replications.return_value = [
            _relationship(f"{TARGET_SVM}:vol1"),
            _relationship(f"{TARGET_SVM}:vol2", RelationshipStatus.BROKEN_OFF),
            _relationship(f"{TARGET_SVM}:vol3", RelationshipStatus.TRANSFERRING),
        ]

        selected = discover_relationships(mock_target_client, TARGET_SVM)

        assert [r.volume_name for r in selected] == ["vol1", "vol3"]
        assert all(r.status is not RelationshipStatus.BROKEN_OFF for r in selected)

    def test_only_target_svm_destinations(self, mock_target_client):
        mock_target_client.list_replications.return_value = [
            _relationship(f"{TARGET_SVM}:vol1"),
            _relationship("other_svm:vol1"),
            _relationship(f"{TARGET_SVM}2:vol9"),
        ]

        selected = discover_relationships(mock_target_client, TARGET_SVM)

        assert [r.destination_location for r in selected] == [f"{TARGET_SVM}:vol1"]

    def test_empty_result_is_not_an_error(self, mock_target_client):
        assert discover_relationships(mock_target_client, TARGET_SVM) == []

    def test_resolve_missing_relationship_is_unknown(self, mock_target_client):
        mock_target_client.get_replication.return_value = None

        resolved = resolve_relationships(mock_target_client, [f"{TARGET_SVM}:vol7"])

        assert resolved[0].status is RelationshipStatus.UNKNOWN
        assert resolved[0].volume_name == "vol7"
