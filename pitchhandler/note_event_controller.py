# v1.0
from dataclasses import dataclass, field
from typing import List, Optional

from pitchhandler.midi_helper import clamp_midi_note

NOTE_ON = "note_on"
NOTE_OFF = "note_off"


@dataclass(frozen=True)
class NoteEvent:
    kind: str          # NOTE_ON / NOTE_OFF
    note: int
    velocity: int      # 0-127
    channel: int = 0   # 0-15


@dataclass
class NoteDecision:
    events: List[NoteEvent] = field(default_factory=list)
    # 外側のデバウンス後に表示すべきノート。無音は -1
    display_note: int = -1


class NoteEventController:
    """
    モノフォニックのノートオン/オフを決定するステートマシン。

    状態は Silent (発音なし) と Sounding(note) の2つ。
    PitchStabilizer 自体も安定判定を持つが、ここではさらに粗いノート単位の
    デバウンスを独立にかける。候補ノートが min_stable_frames フレーム連続した
    場合にのみノートを切り替える。切り替えは常に note_off(旧) -> note_on(新) の順。
    """
    def __init__(self, min_stable_frames: int = 15, silence_threshold: float = 1.0, channel: int = 0):
        if min_stable_frames <= 0:
            raise ValueError(f"min_stable_frames must be positive: {min_stable_frames}")
        if not 0 <= channel <= 15:
            raise ValueError(f"MIDI channel must be 0-15: {channel}")

        self.min_stable_frames = int(min_stable_frames)
        self.silence_threshold = float(silence_threshold)
        self.channel = int(channel)
        self.reset()

    def reset(self):
        self.active_note: Optional[int] = None
        self.last_candidate = -1
        self.candidate_run_length = 0

    @property
    def is_sounding(self) -> bool:
        return self.active_note is not None

    def process(self, candidate_note: int, loudness: float) -> NoteDecision:
        candidate = clamp_midi_note(candidate_note)
        velocity = max(0, min(127, int(loudness)))

        # --- 無音ゲート ---
        # ノート 0 はスタビライザの -1 (未検出) をクランプしたもの
        if candidate == 0 or loudness < self.silence_threshold:
            events = []
            if self.active_note is not None:
                events.append(self._note_off(self.active_note, velocity))
                self.active_note = None
            return NoteDecision(events=events, display_note=-1)

        if candidate == self.active_note:
            return NoteDecision(display_note=candidate)

        # --- ノート切り替えのデバウンス ---
        if candidate != self.last_candidate:
            self.last_candidate = candidate
            self.candidate_run_length = 0
            return self._suppressed()

        self.candidate_run_length += 1
        if self.candidate_run_length < self.min_stable_frames:
            return self._suppressed()

        self.candidate_run_length = 0

        events = []
        if self.active_note is not None:
            events.append(self._note_off(self.active_note, velocity))
        events.append(NoteEvent(NOTE_ON, candidate, velocity, self.channel))
        self.active_note = candidate
        self.last_candidate = candidate
        return NoteDecision(events=events, display_note=candidate)

    def all_notes_off(self, velocity: int = 0) -> List[NoteEvent]:
        """終了処理用。発音中のノートがあれば note_off を返して Silent に戻る。"""
        if self.active_note is None:
            return []
        event = self._note_off(self.active_note, velocity)
        self.active_note = None
        return [event]

    def _suppressed(self) -> NoteDecision:
        return NoteDecision(display_note=self.active_note if self.active_note is not None else -1)

    def _note_off(self, note: int, velocity: int) -> NoteEvent:
        return NoteEvent(NOTE_OFF, note, velocity, self.channel)
