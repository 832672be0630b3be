"""Tests for configuration parsing."""

import tempfile
from pathlib import Path

import pytest

from lazyssh.config import (
    LazySSHConfig,
    default_config_path,
    get_config_template,
    load_config,
    parse_duration,
)
from lazyssh.errors import ParseError
from lazyssh.sorting import SortMode


class TestParseDuration:
    def test_seconds(self):
        assert parse_duration("30s") == 30
        assert parse_duration("1s") == 1

    def test_minutes(self):
        assert parse_duration("5m") == 300

    def test_hours(self):
        assert parse_duration("2h") == 7200

    def test_invalid_unit(self):
        with pytest.raises(ValueError, match="Invalid duration unit"):
            parse_duration("10x")

    def test_invalid_value(self):
        with pytest.raises(ValueError, match="Invalid duration value"):
            parse_duration("abcs")

    def test_empty(self):
        with pytest.raises(ValueError, match="Empty duration"):
            parse_duration("")


class TestConfigTemplate:
    def test_template_is_valid_yaml(self):
        import yaml

        data = yaml.safe_load(get_config_template())
        assert "paths" in data
        assert "backups" in data
        assert "probe" in data

    def test_template_matches_defaults(self):
        import yaml

        data = yaml.safe_load(get_config_template())
        assert LazySSHConfig(**data) == LazySSHConfig()


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        assert config.paths.ssh_config == "~/.ssh/config"
        assert config.backups.max_backups == 10
        assert config.ui.default_sort == SortMode.ALIAS_ASC

    def test_load_partial_config(self):
        config_yaml = """
backups:
  max_backups: 3

ui:
  default_sort: last_seen_desc

probe:
  timeout: 10s
  workers: 2
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(config_yaml)
            f.flush()

            config = load_config(Path(f.name))

            assert config.backups.max_backups == 3
            assert config.ui.default_sort == SortMode.LAST_SEEN_DESC
            assert config.probe.timeout_seconds == 10
            assert config.probe.workers == 2
            assert config.validation.check_paths is True  # default

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == LazySSHConfig()

    @pytest.mark.parametrize(
        "content",
        [
            "backups:\n  max_backups: 0\n",
            "probe:\n  timeout: soon\n",
            "ui:\n  default_sort: random\n",
            "paths: [unclosed\n",
        ],
    )
    def test_invalid(self, tmp_path, content):
        path = tmp_path / "config.yaml"
        path.write_text(content)
        with pytest.raises(ParseError):
            load_config(path)

    def test_paths_expand_home(self, home):
        config = LazySSHConfig()
        assert config.paths.resolve("ssh_config") == home / ".ssh" / "config"

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LAZYSSH_CONFIG", str(tmp_path / "custom.yaml"))
        assert default_config_path() == tmp_path / "custom.yaml"
