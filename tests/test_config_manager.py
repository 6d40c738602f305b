import pytest

from config_manager import ConfigManager
from pitchhandler.pitch_analyzer import DEFAULT_SETTINGS


class TestConfigManager:
    @pytest.fixture
    def config_path(self, tmp_path):
        return tmp_path / "config.ini"

    def test_creates_default_file(self, config_path):
        manager = ConfigManager(str(config_path))
        assert config_path.exists()
        assert manager.get_all_settings_dict() == DEFAULT_SETTINGS

    def test_typed_values(self, config_path):
        settings = ConfigManager(str(config_path)).get_all_settings_dict()
        assert isinstance(settings["sample_rate"], int)
        assert isinstance(settings["frame_duration"], float)
        assert settings["virtual_port"] is True
        assert settings["midi_port_name"] == "Vocal"

    def test_settings_persist(self, config_path):
        manager = ConfigManager(str(config_path))
        manager.set_silence_threshold(3.0)
        manager.set_note_min_stable_frames(20)
        manager.set_yin_threshold(0.15)

        reloaded = ConfigManager(str(config_path))
        assert reloaded.get_silence_threshold() == 3.0
        assert reloaded.get_note_min_stable_frames() == 20
        assert reloaded.get_yin_threshold() == pytest.approx(0.15)

    def test_unknown_key(self, config_path):
        manager = ConfigManager(str(config_path))
        with pytest.raises(KeyError):
            manager.set("no_such_setting", 1)

    def test_invalid_value_falls_back_to_default(self, config_path):
        config_path.write_text("[SETTINGS]\nhistory_size = abc\nmin_stable_frames = 4\n", encoding="utf-8")
        manager = ConfigManager(str(config_path))
        assert manager.get("history_size") == DEFAULT_SETTINGS["history_size"]
        assert manager.get("min_stable_frames") == 4
        # 未記載のキーはデフォルト
        assert manager.get("smoothing_size") == DEFAULT_SETTINGS["smoothing_size"]
