import configparser

import pytest

from srdl.exceptions import ConfigurationError
from srdl.models.config import DownloadConfig
from srdl.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "srdl" / "config.ini"


class TestDownloadConfig:
    def test_defaults(self, tmp_path):
        config = DownloadConfig(config_path=str(tmp_path))

        assert config.mode == "pipe"
        assert config.keep_download is True
        assert config.poll_interval == 0.1
        assert config.grace_period == 1.0
        assert config.relay_buffer_size == 64 * 1024

    def test_explicit_encoder_wins(self, tmp_path):
        config = DownloadConfig(config_path=str(tmp_path), encoder="h264_nvenc")
        assert config.resolved_encoder == "h264_nvenc"

    @pytest.mark.parametrize(
        "field, value",
        [
            ("mode", "stream"),
            ("fragments", 0),
            ("poll_interval_ms", 5),
            ("grace_period_ms", 50_000),
            ("relay_buffer_kb", 1),
            ("ffmpeg_path", "  "),
        ],
    )
    def test_rejects_invalid_values(self, tmp_path, field, value):
        with pytest.raises(ValueError):
            DownloadConfig(config_path=str(tmp_path), **{field: value})

    def test_grace_period_must_exceed_poll_interval(self, tmp_path):
        with pytest.raises(ValueError):
            DownloadConfig(
                config_path=str(tmp_path), poll_interval_ms=500, grace_period_ms=400
            )

    def test_internal_fields_not_in_ini(self):
        keys = DownloadConfig.get_ini_keys()
        assert "config_path" not in keys
        assert "dry_run" not in keys
        assert "mode" in keys


class TestConfigManager:
    def test_missing_file_uses_defaults(self, config_file):
        config = ConfigManager(config_file).load_config()

        assert config.mode == "pipe"
        assert config.config_path == str(config_file.parent)
        assert not config_file.exists()

    def test_round_trip_of_saved_file(self, config_file):
        manager = ConfigManager(config_file)
        manager.save_new_config({"mode": "two-step", "fragments": 4})

        config = ConfigManager(config_file).load_config()

        assert config.mode == "two-step"
        assert config.fragments == 4
        assert config.keep_download is True

    def test_cli_options_override_file(self, config_file):
        ConfigManager(config_file).save_new_config({"mode": "two-step"})

        config = ConfigManager(config_file).load_config({"mode": "pipe", "dry_run": True})

        assert config.mode == "pipe"
        assert config.dry_run is True

    def test_missing_keys_are_migrated(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[DEFAULT]\nmode = two-step\n", encoding="utf-8")

        config = ConfigManager(config_file).load_config()

        parser = configparser.ConfigParser(interpolation=None)
        parser.read(config_file, encoding="utf-8")
        assert config.mode == "two-step"
        assert parser["DEFAULT"]["fragments"] == "8"
        assert parser["DEFAULT"]["video_filter"] == "fps=30, scale=1280:-1"

    def test_invalid_value_raises_configuration_error(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[DEFAULT]\nfragments = many\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()

    def test_invalid_boolean_raises_configuration_error(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[DEFAULT]\nkeep_download = maybe\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid value"):
            ConfigManager(config_file).load_config()

    def test_out_of_range_value_raises_configuration_error(self, config_file):
        ConfigManager(config_file).save_new_config({"poll_interval_ms": 1})

        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()
