"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from movember_tracker import config


class TestEnvironment:
    def test_data_dir_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MOVEMBER_TRACKER_DATA_DIR", str(tmp_path))
        assert config.get_data_dir() == tmp_path.resolve()
        assert config.get_cache_dir() == tmp_path.resolve() / "cache"

    def test_data_dir_default(self, monkeypatch):
        monkeypatch.delenv("MOVEMBER_TRACKER_DATA_DIR", raising=False)
        assert config.get_data_dir() == Path.home() / ".movember-tracker"

    def test_proxy_url_unset_means_direct(self, monkeypatch):
        monkeypatch.delenv("MOVEMBER_PROXY_URL", raising=False)
        assert config.get_proxy_url() is None
        monkeypatch.setenv("MOVEMBER_PROXY_URL", "http://localhost:8787/")
        assert config.get_proxy_url() == "http://localhost:8787"

    def test_numeric_settings(self, monkeypatch):
        monkeypatch.setenv("MOVEMBER_RATE_LIMIT_DELAY", "1.5")
        monkeypatch.setenv("MOVEMBER_REQUEST_TIMEOUT", "10")
        assert config.get_rate_limit_delay() == 1.5
        assert config.get_request_timeout() == 10.0


class TestMemberOverrides:
    def test_yaml_file_layered_on_builtin_table(self, tmp_path):
        path = tmp_path / "overrides.yaml"
        path.write_text('member_overrides:\n  "14810348": " UK "\n  99: nz\n')

        overrides = config.load_member_overrides(path)

        assert overrides["14810348"] == "uk"
        assert overrides["99"] == "nz"

    def test_table_is_read_only(self, tmp_path):
        path = tmp_path / "overrides.yaml"
        path.write_text("member_overrides:\n  '1': ie\n")
        overrides = config.load_member_overrides(path)
        with pytest.raises(TypeError):
            overrides["2"] = "uk"

    def test_missing_file_gives_builtin_table(self, tmp_path):
        assert dict(config.load_member_overrides(tmp_path / "absent.yaml")) == {}

    def test_shipped_example_file_is_empty(self):
        path = Path(__file__).parent.parent / "config" / "subdomain_overrides.yaml"
        assert dict(config.load_member_overrides(path)) == {}
