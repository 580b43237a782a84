"""Unit tests for modules/orchestrator.py."""

import logging
from unittest.mock import patch

import pytest

from conftest import SOURCE_SVM, TARGET_SVM, InterfaceStore, make_interface
from lib.exceptions import OntapApiError
from lib.models import ExportedAcl, ExportedShare, RelationshipStatus, ReplicationRelationship, Volume
from lib.snapshot import ConfigurationSnapshot
from lib.utils import Phase
from modules.orchestrator import CutoverOrchestrator

MUTATORS = (
    "set_interface",
    "set_cifs_service_enabled",
    "update_replication",
    "quiesce_replication",
    "break_replication",
    "mount_volume",
    "create_share",
    "invoke_legacy_command",
    "add_share_acl",
    "remove_share_acl",
)

SHARES = [
    ExportedShare(share_name="data", path="/vol1/data", share_properties=["browsable"]),
    ExportedShare(share_name="home_%w", path="/home/%w"),
]
ACLS = [ExportedAcl("data", "DOM\\Staff", "change")]

# quiesce 1 + replication 3 + mount 1 + 2 shares x 3 + 1 ACL + interface pair 4
EXPECTED_ACTIONS = 16


class ReplicationStore:
    """Relationship whose status follows update/quiesce/break calls."""

    def __init__(self, client, volume="vol1"):
        self.destination = f"{TARGET_SVM}:{volume}"
        self.volume = volume
        self.status = RelationshipStatus.IDLE
        client.list_replications.side_effect = lambda: [self.get(self.destination)]
        client.get_replication.side_effect = self.get
        client.quiesce_replication.side_effect = lambda d: self._set(RelationshipStatus.QUIESCED)
        client.break_replication.side_effect = lambda d: self._set(RelationshipStatus.BROKEN_OFF)

    def _set(self, status):
        self.status = status

    def get(self, destination):
        return ReplicationRelationship(
            source_location=f"{SOURCE_SVM}:{self.volume}",
            destination_location=destination,
            volume_name=self.volume,
            status=self.status,
        )


@pytest.fixture
def populated(mock_source_client, mock_target_client):
    """One interface pair, one relationship, two shares and one ACL."""
    source_lif = make_interface("lif1", svm=SOURCE_SVM, address="10.0.0.10")
    target_lif = make_interface("dr1", svm=TARGET_SVM, address="10.9.0.10", admin_up=False)
    mock_source_client.list_interfaces.return_value = [make_interface("lif1", svm=SOURCE_SVM, address="10.0.0.10")]
    mock_target_client.list_interfaces.return_value = [
        make_interface("dr1", svm=TARGET_SVM, address="10.9.0.10", admin_up=False)
    ]
    store = InterfaceStore(source_lif, target_lif)
    store.attach(mock_source_client)
    store.attach(mock_target_client)

    replication = ReplicationStore(mock_target_client)

    mock_source_client.list_shares.return_value = list(SHARES)
    mock_source_client.list_share_acls.side_effect = lambda svm, name: [a for a in ACLS if a.share_name == name]
    mock_source_client.list_volumes.return_value = [Volume(name="vol1", svm=SOURCE_SVM)]
    mock_target_client.get_volume.return_value = Volume(name="vol1", svm=TARGET_SVM)

    return store, replication


def _assert_no_mutations(*clients):
    for client in clients:
        for name in MUTATORS:
            getattr(client, name).assert_not_called()


@pytest.mark.unit
class TestCutoverOrchestrator:
    @patch("time.sleep")
    def test_full_run(self, mock_sleep, make_ctx, mock_source_client, mock_target_client, populated):
        store, replication = populated
        ctx = make_ctx()
        orchestrator = CutoverOrchestrator(ctx)

        summary = orchestrator.run()

        assert summary.errors == []
        assert orchestrator.phase is Phase.COMPLETED
        assert summary.interface_pairs_migrated == 1
        assert summary.relationships_broken == 1
        assert summary.shares_created == 2
        assert summary.acls_applied == 1
        assert len(ctx.performed_actions) == EXPECTED_ACTIONS
        assert replication.status is RelationshipStatus.BROKEN_OFF
        assert store.interfaces[(TARGET_SVM, "dr1")].address == "10.0.0.10"
        mock_source_client.disconnect.assert_called_once()
        mock_target_client.disconnect.assert_called_once()

    @patch("time.sleep")
    def test_simulate_matches_real_run(self, mock_sleep, make_ctx, mock_source_client, mock_target_client, populated):
        simulated = make_ctx(simulate=True)

        summary = CutoverOrchestrator(simulated).run()

        _assert_no_mutations(mock_source_client, mock_target_client)
        assert summary.errors == []
        assert summary.to_dict() == {
            "interfacePairsMigrated": 0,
            "relationshipsBroken": 0,
            "sharesCreated": 0,
            "aclsApplied": 0,
            "errors": [],
        }
        assert not simulated.source_disabled

        real = make_ctx()
        CutoverOrchestrator(real).run()

        assert len(summary.planned_actions) == len(real.performed_actions) == EXPECTED_ACTIONS

    def test_cardinality_mismatch_makes_no_changes(self, make_ctx, mock_source_client, mock_target_client, populated):
        mock_target_client.list_interfaces.return_value = [
            make_interface("dr1", svm=TARGET_SVM),
            make_interface("dr2", svm=TARGET_SVM),
        ]
        ctx = make_ctx()
        orchestrator = CutoverOrchestrator(ctx)

        summary = orchestrator.run()

        assert len(summary.errors) == 1
        assert summary.errors[0].startswith("[validation]")
        assert orchestrator.phase is Phase.FAILED
        assert not ctx.source_disabled
        mock_source_client.list_sessions.assert_not_called()
        _assert_no_mutations(mock_source_client, mock_target_client)

    @patch("time.sleep")
    def test_failure_after_quiesce_logs_rollback(
        self, mock_sleep, make_ctx, mock_source_client, mock_target_client, populated, caplog
    ):
        caplog.set_level(logging.ERROR)
        mock_target_client.break_replication.side_effect = OntapApiError("13001", "break failed")
        ctx = make_ctx()

        summary = CutoverOrchestrator(ctx).run()

        assert ctx.source_disabled
        assert summary.errors == [f"[replication] {TARGET_SVM}:vol1: ONTAP API error 13001: break failed"]
        assert "MANUAL ROLLBACK REQUIRED" in caplog.text
        assert f"Re-enable the CIFS service on {SOURCE_SVM}" in caplog.text
        mock_target_client.create_share.assert_not_called()
        mock_target_client.set_interface.assert_not_called()
        mock_target_client.disconnect.assert_called_once()

    @patch("time.sleep")
    def test_force_continues_past_break_failure(
        self, mock_sleep, make_ctx, mock_source_client, mock_target_client, populated, caplog
    ):
        store, replication = populated
        caplog.set_level(logging.WARNING)
        mock_target_client.break_replication.side_effect = OntapApiError("13001", "break failed")
        ctx = make_ctx(force=True)
        orchestrator = CutoverOrchestrator(ctx)

        summary = orchestrator.run()

        assert orchestrator.phase is Phase.COMPLETED
        assert summary.errors == [f"[replication] {TARGET_SVM}:vol1: ONTAP API error 13001: break failed"]
        assert not summary.succeeded
        assert summary.relationships_broken == 0
        assert summary.shares_created == 2
        assert summary.interface_pairs_migrated == 1
        assert store.interfaces[(TARGET_SVM, "dr1")].address == "10.0.0.10"
        assert "tolerated (--force)" in caplog.text
        assert "MANUAL ROLLBACK REQUIRED" not in caplog.text

    @patch("time.sleep")
    def test_phase_errors_stop_before_identity(self, mock_sleep, make_ctx, mock_source_client, mock_target_client, populated):
        mock_target_client.add_share_acl.side_effect = OntapApiError("655399", "unknown user")
        ctx = make_ctx()
        orchestrator = CutoverOrchestrator(ctx)

        summary = orchestrator.run()

        assert orchestrator.phase is Phase.FAILED
        assert len(summary.errors) == 1
        assert summary.shares_created == 2
        mock_source_client.set_interface.assert_not_called()
        mock_target_client.set_interface.assert_not_called()

    def test_validate_only(self, make_ctx, mock_source_client, mock_target_client, populated):
        orchestrator = CutoverOrchestrator(make_ctx(), validate_only=True)

        summary = orchestrator.run()

        assert summary.errors == []
        assert orchestrator.plan is not None
        assert len(orchestrator.plan.interface_pairs) == 1
        mock_source_client.list_sessions.assert_not_called()
        mock_source_client.get_cifs_service.assert_called_once_with(SOURCE_SVM)
        _assert_no_mutations(mock_source_client, mock_target_client)

    def test_snapshot_replaces_live_capture(self, make_ctx, mock_source_client, populated):
        snapshot = ConfigurationSnapshot(shares=SHARES[:1], acls=[], volumes=["vol1"])
        orchestrator = CutoverOrchestrator(make_ctx(), snapshot=snapshot, validate_only=True)

        orchestrator.run()

        mock_source_client.list_shares.assert_not_called()
        assert orchestrator.plan.shares == (SHARES[0],)

    def test_explicit_pairs_and_relationships(self, make_ctx, mock_target_client, populated):
        orchestrator = CutoverOrchestrator(
            make_ctx(),
            interface_pairs=[("lif1", "dr1")],
            relationships=[f"{TARGET_SVM}:vol1"],
            validate_only=True,
        )

        orchestrator.run()

        mock_target_client.list_replications.assert_not_called()
        assert orchestrator.plan.interface_pairs[0].target_interface == "dr1"
        assert orchestrator.plan.relationships[0].destination_location == f"{TARGET_SVM}:vol1"
