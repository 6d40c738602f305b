import math

import pytest

from pitchhandler.midi_helper import (
    cents_between_frequencies,
    cents_between_midi_notes,
    clamp_midi_note,
    frequency_to_midi_note,
    midi_note_to_frequency,
    midi_note_to_note_class,
    midi_note_to_note_name,
)


class TestMidiHelper:
    def test_reference_pitch(self):
        assert frequency_to_midi_note(440.0) == 69
        assert midi_note_to_frequency(69) == pytest.approx(440.0)

    def test_no_pitch(self):
        assert frequency_to_midi_note(0) == -1
        assert frequency_to_midi_note(-12.5) == -1
        assert frequency_to_midi_note(float("nan")) == -1

    def test_extreme_frequencies_are_clamped(self):
        assert frequency_to_midi_note(1.0) == 0
        assert frequency_to_midi_note(100000.0) == 127

    def test_note_names(self):
        assert midi_note_to_note_name(69) == "A4"
        assert midi_note_to_note_name(60) == "C4"
        assert midi_note_to_note_name(61) == "C#4"
        assert midi_note_to_note_name(0) == "C-1"
        assert midi_note_to_note_name(127) == "G9"

    def test_out_of_range_notes(self):
        assert midi_note_to_note_name(-1) == "N/A"
        assert midi_note_to_note_name(128) == "N/A"
        assert midi_note_to_note_class(200) == "N/A"
        assert midi_note_to_frequency(-1) == 0.0
        assert midi_note_to_frequency(128) == 0.0

    def test_note_class(self):
        assert midi_note_to_note_class(70) == "A#"
        assert midi_note_to_note_class(48) == "C"

    def test_cents(self):
        assert cents_between_midi_notes(60, 62) == 200.0
        assert cents_between_midi_notes(62, 60) == -200.0
        assert cents_between_frequencies(440.0, 880.0) == pytest.approx(1200.0)

    def test_clamp(self):
        assert clamp_midi_note(-1) == 0
        assert clamp_midi_note(64) == 64
        assert clamp_midi_note(300) == 127

    @pytest.mark.parametrize("freq", [82.4, 110.0, 196.0, 261.63, 300.0, 523.25, 987.77])
    def test_round_trip_within_half_semitone(self, freq):
        back = midi_note_to_frequency(frequency_to_midi_note(freq))
        assert abs(1200 * math.log2(back / freq)) <= 50.0
