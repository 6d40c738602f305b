# v5.0
import math
import statistics
from collections import Counter, deque
from dataclasses import dataclass
from typing import Any, Dict

from pitchhandler.midi_helper import (
    cents_between_frequencies,
    frequency_to_midi_note,
    midi_note_to_note_name,
)

# 約1/3半音。これ未満のずれは揺らぎとみなして無視する
HYSTERESIS_CENTS = 30.0


@dataclass(frozen=True)
class StabilityResult:
    pitch: float
    midi_note: int
    is_stable: bool


@dataclass(frozen=True)
class StabilizerReading:
    pitch: float
    midi_note: int
    note_name: str
    is_stable: bool


UNVOICED_READING = StabilizerReading(pitch=0.0, midi_note=-1, note_name="N/A", is_stable=False)


class PitchStabilizer:
    """
    フレームごとの生の周波数推定値を、安定したピッチ/MIDIノートに変換するクラス。

    4段のフィルタを順に通す:
      1. メディアン平滑化 (単発の外れ値を除去)
      2. ヒステリシス (安定ピッチから30セント未満の変化は無視)
      3. 多数決 (直近の履歴で最も多いMIDIノートを採用)
      4. 安定判定 (履歴の最大偏差が閾値未満の状態が min_stable_frames 続いたら確定)

    無声フレーム (raw_pitch <= 0) は履歴に入れずに捨てる。
    スレッドセーフではない。解析スレッドからのみ呼び出すこと。
    """
    def __init__(self, history_size: int = 5, stability_threshold_hz: float = 5.0,
                 min_stable_frames: int = 3, smoothing_size: int = 3):
        for name, value in (("history_size", history_size),
                            ("stability_threshold_hz", stability_threshold_hz),
                            ("min_stable_frames", min_stable_frames),
                            ("smoothing_size", smoothing_size)):
            if not value > 0:
                raise ValueError(f"{name} must be positive: {value}")

        self.history_size = int(history_size)
        self.stability_threshold_hz = float(stability_threshold_hz)
        self.min_stable_frames = int(min_stable_frames)
        self.smoothing_size = int(smoothing_size)

        self.smoothing_buffer: deque = deque(maxlen=self.smoothing_size)
        self.pitch_history: deque = deque(maxlen=self.history_size)
        self.midi_note_history: deque = deque(maxlen=self.history_size)
        self.reset()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PitchStabilizer":
        return cls(
            history_size=int(config.get("history_size", 5)),
            stability_threshold_hz=float(config.get("stability_threshold_hz", 5.0)),
            min_stable_frames=int(config.get("min_stable_frames", 3)),
            smoothing_size=int(config.get("smoothing_size", 3)),
        )

    def reset(self):
        self.last_stable_pitch = 0.0
        self.last_stable_midi_note = -1
        self.stable_run_length = 0
        self.smoothing_buffer.clear()
        self.pitch_history.clear()
        self.midi_note_history.clear()

    def process_pitch(self, raw_pitch: float) -> StabilizerReading:
        # NaN もここで弾かれる
        if not raw_pitch > 0:
            return UNVOICED_READING

        smoothed = self._apply_smoothing(raw_pitch)
        hysteresis_pitch = self._apply_hysteresis(smoothed)
        voted_note = self._majority_vote(hysteresis_pitch)
        result = self._check_stability(hysteresis_pitch, voted_note)

        return StabilizerReading(
            pitch=result.pitch,
            midi_note=result.midi_note,
            note_name=midi_note_to_note_name(result.midi_note),
            is_stable=result.is_stable,
        )

    def _apply_smoothing(self, raw_pitch: float) -> float:
        """移動平均ではなくメディアン (偶数個なら中央2値の平均)"""
        self.smoothing_buffer.append(raw_pitch)
        return statistics.median(self.smoothing_buffer)

    def _apply_hysteresis(self, pitch: float) -> float:
        if self.last_stable_pitch > 0:
            cents = cents_between_frequencies(self.last_stable_pitch, pitch)
            if abs(cents) < HYSTERESIS_CENTS:
                return self.last_stable_pitch
        return pitch

    def _majority_vote(self, pitch: float) -> int:
        current_note = frequency_to_midi_note(pitch)
        self.midi_note_history.append(current_note)

        counts = Counter(self.midi_note_history)
        # 同数の場合はノート番号が小さい方
        majority_note, majority_count = min(counts.items(), key=lambda kv: (-kv[1], kv[0]))

        if majority_count >= math.ceil(len(self.midi_note_history) / 2):
            return majority_note
        return current_note

    def _check_stability(self, pitch: float, midi_note: int) -> StabilityResult:
        self.pitch_history.append(pitch)

        if len(self.pitch_history) >= self.min_stable_frames:
            avg_pitch = statistics.fmean(self.pitch_history)
            max_deviation = max(abs(p - avg_pitch) for p in self.pitch_history)

            if max_deviation < self.stability_threshold_hz:
                if midi_note == self.last_stable_midi_note:
                    self.stable_run_length += 1
                else:
                    self.stable_run_length = 1
                    self.last_stable_midi_note = midi_note
                    self.last_stable_pitch = avg_pitch

                if self.stable_run_length >= self.min_stable_frames:
                    return StabilityResult(self.last_stable_pitch, self.last_stable_midi_note, True)
            else:
                self.stable_run_length = 0

        return StabilityResult(pitch, midi_note, False)
