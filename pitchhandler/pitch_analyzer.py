# v6.0
import logging
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from yin_processor import YinProcessor
from pitchhandler.note_stabilizer import PitchStabilizer, StabilizerReading
from pitchhandler.note_event_controller import NoteDecision, NoteEventController

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "sample_rate": 44100,
    "frame_duration": 0.05,
    "analysis_rate": 60.0,
    "history_size": 5,
    "stability_threshold_hz": 5.0,
    "min_stable_frames": 3,
    "smoothing_size": 3,
    "note_min_stable_frames": 15,
    "silence_threshold": 1.0,
    "loudness_full_scale": 0.1,
    "yin_threshold": 0.20,
    "min_freq": 60.0,
    "max_freq": 1200.0,
    "midi_port_name": "Vocal",
    "midi_channel": 0,
    "virtual_port": True,
}


@dataclass
class FrameResult:
    reading: StabilizerReading
    decision: NoteDecision
    raw_pitch: float
    loudness: int
    display_volume: float


def rms(samples: np.ndarray) -> float:
    if len(samples) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))


def loudness_to_velocity(rms_value: float, full_scale: float = 0.1) -> int:
    """RMS を 0-127 のベロシティへ。full_scale 以上は 127 に張り付く。"""
    return int(127 * max(0.0, min(rms_value / full_scale, 1.0)))


class PitchAnalyzer:
    """
    1フレーム分の処理をまとめるオーケストレーター。

    窓 -> 音量(RMS) -> YIN -> PitchStabilizer -> NoteEventController
    の順に流し、表示用の値と送出すべきノートイベントを FrameResult で返す。
    """

    def __init__(self, config: Dict[str, Any]):
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(config)
        self._build_components()

    @property
    def buffer_capacity(self) -> int:
        return int(float(self.settings["sample_rate"]) * float(self.settings["frame_duration"]))

    def _build_components(self):
        s = self.settings
        self.yin = YinProcessor(
            sample_rate=float(s["sample_rate"]),
            min_freq=float(s["min_freq"]),
            max_freq=float(s["max_freq"]),
            threshold=float(s["yin_threshold"]),
        )
        if self.buffer_capacity < self.yin.required_length():
            logger.warning(
                f"Frame window ({self.buffer_capacity} samples) is shorter than YIN needs "
                f"({self.yin.required_length()}); low notes will not be detected."
            )
        self.stabilizer = PitchStabilizer.from_config(s)
        self.controller = NoteEventController(
            min_stable_frames=int(s["note_min_stable_frames"]),
            silence_threshold=float(s["silence_threshold"]),
            channel=int(s["midi_channel"]),
        )
        self.full_scale = float(s["loudness_full_scale"])

    def update_settings(self, new_config: Dict[str, Any]):
        """
        設定変更。パラメータを持つコンポーネントを作り直すため、
        スタビライザの履歴とデバウンス状態はリセットされる。
        発音中のノートは引き継ぐ (note_off を取りこぼさないため)。
        """
        active_note = self.controller.active_note
        self.settings.update(new_config)
        self._build_components()
        self.controller.active_note = active_note
        logger.info(f"Analyzer settings updated: {sorted(new_config.keys())}")

    def reset_state(self):
        self.stabilizer.reset()
        self.controller.reset()

    def process(self, samples: np.ndarray) -> FrameResult:
        level = rms(samples)
        loudness = loudness_to_velocity(level, self.full_scale)

        raw_pitch = self.yin.estimate(samples)
        reading = self.stabilizer.process_pitch(raw_pitch)
        decision = self.controller.process(reading.midi_note, loudness)

        return FrameResult(
            reading=reading,
            decision=decision,
            raw_pitch=raw_pitch,
            loudness=loudness,
            display_volume=loudness / 127.0,
        )
