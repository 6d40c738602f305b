# v2.0
import configparser
import logging
from pathlib import Path
from typing import Any, Dict

from pitchhandler.pitch_analyzer import DEFAULT_SETTINGS


class ConfigManager:
    """
    config.ini ファイルの読み書きを管理するクラス。
    値は型付きで取得し、PitchDetector にはまとめて get_all_settings_dict() で渡す。
    """
    SEC_SETTINGS = "SETTINGS"

    INT_KEYS = ("sample_rate", "history_size", "min_stable_frames", "smoothing_size",
                "note_min_stable_frames", "midi_channel")
    FLOAT_KEYS = ("frame_duration", "analysis_rate", "stability_threshold_hz", "silence_threshold",
                  "loudness_full_scale", "yin_threshold", "min_freq", "max_freq")
    BOOL_KEYS = ("virtual_port",)
    STR_KEYS = ("midi_port_name",)

    def __init__(self, config_path: str = "config.ini"):
        self.config_path = Path(config_path)
        self.config = configparser.ConfigParser()
        self._load_config()

    def _load_config(self):
        if self.config_path.exists():
            try:
                self.config.read(self.config_path, encoding="utf-8")
            except configparser.Error as e:
                logging.error(f"Config read error: {e}")
                self.config = configparser.ConfigParser()

        if not self.config.has_section(self.SEC_SETTINGS):
            self._create_default_config()

    def _create_default_config(self):
        self.config[self.SEC_SETTINGS] = {key: str(value) for key, value in DEFAULT_SETTINGS.items()}
        self._save_to_disk()

    def _save_to_disk(self):
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                self.config.write(f)
        except OSError as e:
            logging.error(f"Config save error: {e}")

    def _ensure_section(self, section: str):
        if not self.config.has_section(section):
            self.config.add_section(section)

    # --- Typed access ---
    def get(self, key: str) -> Any:
        default = DEFAULT_SETTINGS[key]
        try:
            if key in self.INT_KEYS:
                return self.config.getint(self.SEC_SETTINGS, key, fallback=default)
            if key in self.FLOAT_KEYS:
                return self.config.getfloat(self.SEC_SETTINGS, key, fallback=default)
            if key in self.BOOL_KEYS:
                return self.config.getboolean(self.SEC_SETTINGS, key, fallback=default)
        except ValueError as e:
            logging.error(f"Invalid config value for '{key}': {e}")
            return default
        return self.config.get(self.SEC_SETTINGS, key, fallback=default)

    def set(self, key: str, value: Any):
        if key not in DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting: {key}")
        self._ensure_section(self.SEC_SETTINGS)
        self.config[self.SEC_SETTINGS][key] = str(value)
        self._save_to_disk()

    # --- Frequently used settings ---
    def get_silence_threshold(self) -> float:
        return self.get("silence_threshold")

    def set_silence_threshold(self, value: float):
        self.set("silence_threshold", f"{value:.1f}")

    def get_note_min_stable_frames(self) -> int:
        return self.get("note_min_stable_frames")

    def set_note_min_stable_frames(self, value: int):
        self.set("note_min_stable_frames", int(value))

    def get_yin_threshold(self) -> float:
        return self.get("yin_threshold")

    def set_yin_threshold(self, value: float):
        self.set("yin_threshold", f"{value:.2f}")

    def get_all_settings_dict(self) -> Dict[str, Any]:
        """PitchDetectorへ渡すための全設定辞書を作成"""
        return {key: self.get(key) for key in DEFAULT_SETTINGS}
