"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from docmapper.config.settings import Settings, StoreSettings


class TestStoreSettings:
    def test_defaults(self) -> None:
        store = StoreSettings()
        assert store.backend == "elasticsearch"
        assert store.hosts == ["http://localhost:9200"]
        assert store.refresh_on_write is False

    def test_hosts_from_json_string(self) -> None:
        store = StoreSettings(hosts='["http://a:9200", "http://b:9200"]')
        assert store.hosts == ["http://a:9200", "http://b:9200"]

    def test_hosts_from_plain_string(self) -> None:
        assert StoreSettings(hosts="http://a:9200").hosts == ["http://a:9200"]

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValueError):
            StoreSettings(backend="redis")


class TestSettings:
    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOCMAPPER_STORE__BACKEND", "memory")
        monkeypatch.setenv("DOCMAPPER_PAGINATION__DEFAULT_PER_PAGE", "25")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.store.backend == "memory"
        assert settings.pagination.default_per_page == 25

    def test_from_yaml(self, tmp_path: Path) -> None:
        config = tmp_path / "docmapper.yaml"
        config.write_text(
            "store:\n"
            "  backend: opensearch\n"
            "  hosts:\n"
            "    - https://search:9200\n"
            "observability:\n"
            "  log_format: console\n"
        )

        settings = Settings.from_yaml(config)

        assert settings.store.backend == "opensearch"
        assert settings.store.hosts == ["https://search:9200"]
        assert settings.observability.log_format == "console"

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml(tmp_path / "missing.yaml")
