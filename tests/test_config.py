"""Unit tests for lib/config.py."""

import argparse
from unittest.mock import patch

import pytest

from lib.config import load_config_file, merge_config, resolve_credentials
from lib.exceptions import ConfigurationError


@pytest.mark.unit
class TestLoadConfigFile:
    def test_valid(self, tmp_path):
        path = tmp_path / "cutover.yaml"
        path.write_text("source:\n  host: cluster-a\n  svm: svm_prod\nsettle_delay: 2\n")

        assert load_config_file(str(path)) == {"source": {"host": "cluster-a", "svm": "svm_prod"}, "settle_delay": 2}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "cutover.yaml"
        path.write_text("")

        assert load_config_file(str(path)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config_file(str(tmp_path / "absent.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "cutover.yaml"
        path.write_text("source: [unclosed\n")

        with pytest.raises(ConfigurationError, match="not valid YAML"):
            load_config_file(str(path))

    @pytest.mark.parametrize(
        "content,match",
        [
            ("- a\n- b\n", "must contain a mapping"),
            ("source: cluster-a\n", "must be a mapping"),
            ("target:\n  password: secret\n", "Unknown keys under 'target'"),
            ("dry_run: true\n", "Unknown key 'dry_run'"),
        ],
    )
    def test_rejected_content(self, tmp_path, content, match):
        path = tmp_path / "cutover.yaml"
        path.write_text(content)

        with pytest.raises(ConfigurationError, match=match):
            load_config_file(str(path))


@pytest.mark.unit
class TestMergeConfig:
    def test_cli_wins(self):
        args = argparse.Namespace(source_host="cli-host", source_svm=None, poll_interval=None, settle_delay=1.0)
        config = {"source": {"host": "file-host", "svm": "svm_prod"}, "poll_interval": 20, "settle_delay": 9}

        merge_config(args, config)

        assert args.source_host == "cli-host"
        assert args.source_svm == "svm_prod"
        assert args.poll_interval == 20
        assert args.settle_delay == 1.0


@pytest.mark.unit
class TestResolveCredentials:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("SRC_USER", "ops")
        monkeypatch.setenv("SRC_PASS", "pw")

        assert resolve_credentials("source", None, "SRC_USER", "SRC_PASS") == ("ops", "pw")

    def test_explicit_username_wins(self, monkeypatch):
        monkeypatch.setenv("SRC_USER", "ops")
        monkeypatch.setenv("SRC_PASS", "pw")

        assert resolve_credentials("source", "admin2", "SRC_USER", "SRC_PASS")[0] == "admin2"

    def test_prompts_for_password(self, monkeypatch):
        monkeypatch.delenv("SRC_USER", raising=False)
        monkeypatch.delenv("SRC_PASS", raising=False)

        with patch("lib.config.getpass.getpass", return_value="typed") as mock_getpass:
            user, password = resolve_credentials("source", None, "SRC_USER", "SRC_PASS")

        assert (user, password) == ("admin", "typed")
        assert "source cluster" in mock_getpass.call_args[0][0]

    def test_non_interactive_without_password(self, monkeypatch):
        monkeypatch.delenv("SRC_PASS", raising=False)

        with pytest.raises(ConfigurationError, match="SRC_PASS"):
            resolve_credentials("source", "admin", "SRC_USER", "SRC_PASS", interactive=False)
