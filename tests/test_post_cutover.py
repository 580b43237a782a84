"""Unit tests for modules/post_cutover.py."""

import pytest

from conftest import TARGET_SVM, make_interface
from lib.exceptions import TransientError
from lib.models import CifsService, InterfacePair
from modules.post_cutover import PostCutoverVerification

PAIR = InterfacePair("lif1", "dr1", "10.0.0.10", "24")


@pytest.mark.unit
class TestPostCutoverVerification:
    def test_passes(self, make_ctx, mock_target_client):
        mock_target_client.get_interface.return_value = make_interface("dr1", svm=TARGET_SVM, address="10.0.0.10")
        ctx = make_ctx()

        assert PostCutoverVerification(ctx).verify([PAIR]) is True
        assert ctx.summary.errors == []

    def test_service_not_running(self, make_ctx, mock_target_client):
        mock_target_client.get_cifs_service.return_value = CifsService(svm=TARGET_SVM, enabled=False)
        mock_target_client.get_interface.return_value = make_interface("dr1", svm=TARGET_SVM, address="10.0.0.10")
        ctx = make_ctx()

        assert PostCutoverVerification(ctx).verify([PAIR]) is False
        assert ctx.summary.errors == [f"[verify] {TARGET_SVM}: CIFS service is not running"]

    def test_interface_down_on_wrong_address(self, make_ctx, mock_target_client):
        mock_target_client.get_interface.return_value = make_interface(
            "dr1", svm=TARGET_SVM, address="10.9.0.10", admin_up=False
        )
        ctx = make_ctx()

        assert PostCutoverVerification(ctx).verify([PAIR]) is False
        assert ctx.summary.errors == [
            f"[verify] {TARGET_SVM}:dr1: interface is down",
            f"[verify] {TARGET_SVM}:dr1: address is 10.9.0.10, expected 10.0.0.10",
        ]

    def test_missing_interface(self, make_ctx, mock_target_client):
        mock_target_client.get_interface.return_value = None
        ctx = make_ctx()

        assert PostCutoverVerification(ctx).verify([PAIR]) is False
        assert "interface not found" in ctx.summary.errors[0]

    def test_read_failure_is_recorded(self, make_ctx, mock_target_client):
        mock_target_client.get_cifs_service.side_effect = TransientError("timeout")
        ctx = make_ctx()

        assert PostCutoverVerification(ctx).verify([PAIR]) is False
        assert "verification read failed" in ctx.summary.errors[0]

    def test_simulate_reads_nothing(self, make_ctx, mock_target_client):
        assert PostCutoverVerification(make_ctx(simulate=True)).verify([PAIR]) is True

        mock_target_client.get_cifs_service.assert_not_called()
        mock_target_client.get_interface.assert_not_called()
