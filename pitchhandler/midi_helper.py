# v1.0
import math

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

A4_FREQ = 440.0
A4_MIDI = 69
MIDI_MIN = 0
MIDI_MAX = 127


def clamp_midi_note(note: int) -> int:
    return max(MIDI_MIN, min(MIDI_MAX, int(note)))


def frequency_to_midi_note(frequency: float) -> int:
    """周波数 -> MIDIノート番号 (0-127)。無音/無効値は -1。"""
    if not frequency > 0:
        return -1
    midi_note = A4_MIDI + 12 * math.log2(frequency / A4_FREQ)
    return clamp_midi_note(round(midi_note))


def midi_note_to_frequency(midi_note: int) -> float:
    if midi_note < MIDI_MIN or midi_note > MIDI_MAX:
        return 0.0
    return A4_FREQ * 2 ** ((midi_note - A4_MIDI) / 12.0)


def midi_note_to_note_name(midi_note: int) -> str:
    """MIDIノート番号 -> 音名+オクターブ (例: 69 -> "A4", 61 -> "C#4")"""
    if midi_note < MIDI_MIN or midi_note > MIDI_MAX:
        return "N/A"
    octave = (midi_note // 12) - 1
    return f"{NOTE_NAMES[midi_note % 12]}{octave}"


def midi_note_to_note_class(midi_note: int) -> str:
    if midi_note < MIDI_MIN or midi_note > MIDI_MAX:
        return "N/A"
    return NOTE_NAMES[midi_note % 12]


def cents_between_midi_notes(note1: int, note2: int) -> float:
    return (note2 - note1) * 100.0


def cents_between_frequencies(freq1: float, freq2: float) -> float:
    """freq1 から見た freq2 のずれ (セント)。両方とも正の値であること。"""
    return 1200 * math.log2(freq2 / freq1)
