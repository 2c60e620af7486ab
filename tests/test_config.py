"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from lanwake.config.loader import (
    DEFAULT_DB_PATH,
    ConfigError,
    Settings,
    load_config,
    load_settings,
    settings_from_config,
    validate_config,
)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_yaml(self, tmp_path: Path) -> None:
        """Should load a valid YAML config file."""
        config_data = {"settings": {"db_path": "/var/lib/lanwake/db.sqlite"}}
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump(config_data))

        assert load_config(config_file) == config_data

    def test_load_missing_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(Path("/nonexistent/config.yaml"))

    def test_load_empty_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_config(config_file) is None


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_empty_mapping_is_valid(self) -> None:
        assert validate_config({}) == []

    def test_non_mapping_root(self) -> None:
        assert validate_config(["a"]) == ["Config root must be a YAML mapping"]

    def test_settings_must_be_mapping(self) -> None:
        assert validate_config({"settings": "nope"}) == ["'settings' must be a mapping"]

    def test_invalid_broadcast(self) -> None:
        errors = validate_config({"settings": {"default_broadcast": "300.1.1.1"}})
        assert len(errors) == 1
        assert "default_broadcast" in errors[0]

    @pytest.mark.parametrize("port", [0, 70000, "nine", True])
    def test_invalid_port(self, port: object) -> None:
        errors = validate_config({"settings": {"wol_port": port}})
        assert any("wol_port" in e for e in errors)

    def test_invalid_log_level(self) -> None:
        errors = validate_config({"settings": {"log_level": "chatty"}})
        assert any("log_level" in e for e in errors)

    def test_multiple_errors_collected(self) -> None:
        errors = validate_config(
            {"settings": {"default_broadcast": "x", "wol_port": -1, "db_path": 5}}
        )
        assert len(errors) == 3

    def test_valid_full_config(self) -> None:
        config = {
            "settings": {
                "db_path": "./data/database.db",
                "legacy_devices_path": "./devices.json",
                "default_broadcast": "192.168.1.255",
                "wol_port": 7,
                "log_level": "debug",
                "log_file": "./logs/lanwake.log",
            }
        }
        assert validate_config(config) == []


class TestSettingsFromConfig:
    def test_defaults(self) -> None:
        settings = settings_from_config(None, env={})
        assert settings == Settings()
        assert settings.db_path == DEFAULT_DB_PATH

    def test_values_from_config(self) -> None:
        settings = settings_from_config(
            {
                "settings": {
                    "db_path": "/tmp/x.db",
                    "default_broadcast": "10.0.0.255",
                    "wol_port": 7,
                    "log_level": "debug",
                    "legacy_devices_path": "",
                }
            },
            env={},
        )
        assert settings.db_path == Path("/tmp/x.db")
        assert settings.default_broadcast == "10.0.0.255"
        assert settings.wol_port == 7
        assert settings.log_level == "DEBUG"
        assert settings.legacy_devices_path is None

    def test_env_overrides(self) -> None:
        settings = settings_from_config(
            {"settings": {"db_path": "/tmp/x.db", "log_level": "INFO"}},
            env={"DEVICES_DB_PATH": "/srv/devices.db", "LOG_LEVEL": "warning"},
        )
        assert settings.db_path == Path("/srv/devices.db")
        assert settings.log_level == "WARNING"

    def test_invalid_config_raises(self) -> None:
        with pytest.raises(ConfigError) as excinfo:
            settings_from_config({"settings": {"wol_port": 0}}, env={})
        assert excinfo.value.errors


class TestLoadSettings:
    def test_missing_file_yields_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("DEVICES_DB_PATH", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert load_settings(tmp_path / "missing.yaml") == Settings()

    def test_invalid_yaml_raises_config_error(self, tmp_path: Path) -> None:
        cfg = tmp_path / "config.yaml"
        cfg.write_text("invalid: yaml: content: [")
        with pytest.raises(ConfigError):
            load_settings(cfg)

    def test_reads_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DEVICES_DB_PATH", raising=False)
        cfg = tmp_path / "config.yaml"
        cfg.write_text(yaml.dump({"settings": {"db_path": str(tmp_path / "d.db")}}))
        assert load_settings(cfg).db_path == tmp_path / "d.db"
