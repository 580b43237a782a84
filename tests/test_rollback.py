"""Unit tests for modules/rollback.py."""

import logging

import pytest

from conftest import SOURCE_SVM, TARGET_SVM
from lib.models import CutoverPlan, InterfacePair, ReplicationRelationship
from modules.rollback import RollbackGuide


@pytest.fixture
def plan():
    return CutoverPlan.build(
        interface_pairs=[InterfacePair("lif1", "dr1", "10.0.0.10", "24")],
        relationships=[
            ReplicationRelationship(f"{SOURCE_SVM}:vol1", f"{TARGET_SVM}:vol1", "vol1"),
            ReplicationRelationship(f"{SOURCE_SVM}:vol2", f"{TARGET_SVM}:vol2", "vol2"),
        ],
        shares=[],
        acls=[],
    )


@pytest.mark.unit
class TestRollbackGuide:
    def test_steps_for_plan(self, make_ctx, plan):
        steps = RollbackGuide(make_ctx()).steps(plan, created_shares=["data", "home_%w"])

        assert len(steps) == 5
        assert steps[0].startswith(f"Resync replication {SOURCE_SVM}:vol1 -> {TARGET_SVM}:vol1")
        assert f"{SOURCE_SVM}:lif1 up on 10.0.0.10/24" in steps[2]
        assert steps[3] == f"Re-enable the CIFS service on {SOURCE_SVM}"
        assert steps[4] == f"Remove partially created shares on {TARGET_SVM}: data, home_%w"

    def test_generic_steps_without_plan(self, make_ctx):
        steps = RollbackGuide(make_ctx()).steps(None)

        assert len(steps) == 4
        assert "Re-establish replication" in steps[0]
        assert f"Re-enable the CIFS service on {SOURCE_SVM}" in steps

    def test_log_steps_banner(self, make_ctx, plan, caplog):
        caplog.set_level(logging.ERROR)

        steps = RollbackGuide(make_ctx()).log_steps(plan)

        assert "MANUAL ROLLBACK REQUIRED" in caplog.text
        assert f"1. {steps[0]}" in caplog.text
        assert all(record.levelno == logging.ERROR for record in caplog.records)
