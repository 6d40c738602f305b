import numpy as np
import pytest

pytest.importorskip("pyaudio")

from pitchhandler.note_event_controller import NOTE_OFF, NOTE_ON  # noqa: E402
from pitchhandler.pitchdetector import PitchDetector  # noqa: E402


def int16_sine(freq, n, sr=44100, amplitude=0.5):
    t = np.arange(n) / sr
    return (amplitude * 32767 * np.sin(2 * np.pi * freq * t)).astype("<i2").tobytes()


class TestPitchDetector:
    @pytest.fixture
    def sent(self):
        return []

    @pytest.fixture
    def frames(self):
        return []

    @pytest.fixture
    def detector(self, sent, frames):
        detector = PitchDetector(frames.append, config={"note_min_stable_frames": 3}, midi_sink=sent.append)
        # ストリームを開かずにコールバックだけを動かす
        detector._is_running = True
        return detector

    def test_underrun_skips_frame(self, detector, frames):
        detector._pyaudio_callback(int16_sine(440.0, 1000), 1000, None, 0)
        assert detector.process_frame() is None
        assert frames == []

    def test_callback_fills_buffer_and_events_reach_sink(self, detector, sent, frames):
        detector._pyaudio_callback(int16_sine(440.0, 4410), 4410, None, 0)
        for _ in range(10):
            detector.process_frame()

        assert len(frames) == 10
        assert [(e.kind, e.note) for e in sent] == [(NOTE_ON, 69)]

    def test_stop_releases_sounding_note(self, detector, sent):
        detector._pyaudio_callback(int16_sine(440.0, 4410), 4410, None, 0)
        for _ in range(10):
            detector.process_frame()

        detector.stop_stream()
        assert [(e.kind, e.note) for e in sent] == [(NOTE_ON, 69), (NOTE_OFF, 69)]
        assert not detector.is_running
        assert detector.analyzer.controller.active_note is None

    def test_settings_update_resizes_window(self, detector):
        detector._is_running = False
        detector.update_settings({"frame_duration": 0.1})
        assert detector.buffer.capacity == 4410
