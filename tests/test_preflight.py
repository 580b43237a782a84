"""Unit tests for modules/preflight_coordinator.py and modules/preflight/."""

from unittest.mock import Mock

import pytest

from conftest import SOURCE_SVM, TARGET_SVM, make_interface
from lib.exceptions import PreconditionError, TransientError
from lib.models import CifsService, ReplicationRelationship
from modules.preflight import (
    CifsServiceValidator,
    InterfaceAddressValidator,
    InterfaceCardinalityValidator,
    SnapshotVolumeValidator,
    ValidationReporter,
)
from modules.preflight_coordinator import PreflightValidator


@pytest.fixture
def reporter():
    return ValidationReporter()


def _relationship(volume):
    return ReplicationRelationship(
        source_location=f"{SOURCE_SVM}:{volume}",
        destination_location=f"{TARGET_SVM}:{volume}",
        volume_name=volume,
    )


@pytest.mark.unit
class TestInterfaceValidators:
    def test_cardinality_mismatch_is_critical(self, reporter):
        InterfaceCardinalityValidator(reporter).run(
            [make_interface("lif1"), make_interface("lif2")], [make_interface("dr1")]
        )

        failures = reporter.critical_failures()
        assert len(failures) == 1
        assert "1:1" in failures[0].message

    def test_cardinality_requires_interfaces(self, reporter):
        InterfaceCardinalityValidator(reporter).run([], [])

        assert reporter.critical_failures()

    def test_cardinality_passes(self, reporter):
        InterfaceCardinalityValidator(reporter).run([make_interface("lif1")], [make_interface("dr1")])

        assert not reporter.critical_failures()

    def test_invalid_source_address(self, reporter):
        InterfaceAddressValidator(reporter).run([make_interface("lif1", address="10.0.0.300")])

        assert "lif1" in reporter.critical_failures()[0].message

    def test_valid_source_address(self, reporter):
        InterfaceAddressValidator(reporter).run([make_interface("lif1", address="10.0.0.10", netmask="255.255.255.0")])

        assert not reporter.critical_failures()


@pytest.mark.unit
class TestServiceValidator:
    def test_missing_service(self, reporter):
        client = Mock()
        client.get_cifs_service.return_value = None

        CifsServiceValidator(reporter).run(client, SOURCE_SVM, "source")

        assert SOURCE_SVM in reporter.critical_failures()[0].message

    def test_read_error_is_reported(self, reporter):
        client = Mock()
        client.get_cifs_service.side_effect = TransientError("timeout")

        CifsServiceValidator(reporter).run(client, SOURCE_SVM, "source")

        assert "timeout" in reporter.critical_failures()[0].message

    def test_disabled_service_passes(self, reporter):
        client = Mock()
        client.get_cifs_service.return_value = CifsService(svm=TARGET_SVM, name="DR", enabled=False)

        CifsServiceValidator(reporter).run(client, TARGET_SVM, "target")

        assert not reporter.critical_failures()


@pytest.mark.unit
class TestSnapshotVolumeValidator:
    def test_difference_is_not_critical(self, reporter):
        SnapshotVolumeValidator(reporter).run([_relationship("vol1"), _relationship("vol2")], ["vol1", "vol3"])

        assert not reporter.critical_failures()
        result = reporter.results[0]
        assert result.passed is False
        assert "1 matched, 1 only replicated, 1 only in snapshot" == result.message

    def test_skipped_without_snapshot(self, reporter):
        SnapshotVolumeValidator(reporter).run([_relationship("vol1")], None)

        assert reporter.results == []


@pytest.mark.unit
class TestPreflightValidator:
    def test_cardinality_mismatch_raises_before_any_mutation(self, mock_source_client, mock_target_client):
        validator = PreflightValidator(mock_source_client, mock_target_client, SOURCE_SVM, TARGET_SVM)

        with pytest.raises(PreconditionError) as exc_info:
            validator.validate_all(
                [make_interface("lif1"), make_interface("lif2")],
                [make_interface("dr1", svm=TARGET_SVM)],
                [],
            )

        assert "[validation]" in str(exc_info.value)
        for client in (mock_source_client, mock_target_client):
            client.set_interface.assert_not_called()
            client.set_cifs_service_enabled.assert_not_called()
            client.break_replication.assert_not_called()
            client.create_share.assert_not_called()

    def test_passes_with_warnings_only(self, mock_source_client, mock_target_client):
        validator = PreflightValidator(mock_source_client, mock_target_client, SOURCE_SVM, TARGET_SVM)

        validator.validate_all([make_interface("lif1")], [make_interface("dr1", svm=TARGET_SVM)], [])

        assert not validator.reporter.critical_failures()
        assert any(not r.passed for r in validator.reporter.results)


@pytest.mark.unit
class TestValidationReporter:
    def test_failed_non_critical_result_is_a_warning(self, reporter):
        result = reporter.add_result("Replication relationships", False, "none found", critical=False)

        assert result.blocking is False
        assert reporter.warnings() == [result]
        assert reporter.critical_failures() == []

    def test_failed_critical_result_blocks(self, reporter):
        reporter.add_result("Interface cardinality", True, "1 source / 1 target interface(s)")
        failed = reporter.add_result("CIFS service (source)", False, "no CIFS server configured")

        assert failed.blocking is True
        assert reporter.critical_failures() == [failed]
        assert reporter.warnings() == []

    def test_validator_reports_under_its_check_name(self, reporter):
        InterfaceCardinalityValidator(reporter).run([make_interface("lif1")], [make_interface("dr1")])

        assert reporter.results[0].check == "Interface cardinality"
        assert reporter.results[0].critical is True
