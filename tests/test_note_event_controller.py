import pytest

from pitchhandler.note_event_controller import NOTE_OFF, NOTE_ON, NoteEvent, NoteEventController

LOUD = 100


class TestNoteEventController:
    @pytest.fixture
    def controller(self):
        return NoteEventController(min_stable_frames=3, silence_threshold=1.0, channel=0)

    def hold(self, controller, note, frames, loudness=LOUD):
        return [controller.process(note, loudness) for _ in range(frames)]

    def all_events(self, decisions):
        return [e for d in decisions for e in d.events]

    def start_note(self, controller, note):
        # 1フレーム目で候補登録、その後 min_stable_frames フレームで確定
        decisions = self.hold(controller, note, 1 + controller.min_stable_frames)
        assert controller.active_note == note
        return decisions

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            NoteEventController(min_stable_frames=0)
        with pytest.raises(ValueError):
            NoteEventController(channel=16)

    def test_initial_state_is_silent(self, controller):
        assert controller.active_note is None
        assert not controller.is_sounding

    def test_first_note_from_silence(self, controller):
        decisions = self.start_note(controller, 60)
        assert self.all_events(decisions[:-1]) == []
        assert decisions[-1].events == [NoteEvent(NOTE_ON, 60, LOUD, 0)]
        assert decisions[-1].display_note == 60

    def test_default_outer_debounce_is_fifteen_frames(self):
        controller = NoteEventController()
        decisions = self.hold(controller, 60, 16)
        assert self.all_events(decisions[:15]) == []
        assert decisions[15].events[0].kind == NOTE_ON

    def test_steady_note_emits_nothing(self, controller):
        self.start_note(controller, 60)
        decisions = self.hold(controller, 60, 20)
        assert self.all_events(decisions) == []
        assert all(d.display_note == 60 for d in decisions)

    def test_silence_releases_active_note(self, controller):
        self.start_note(controller, 60)
        decision = controller.process(60, 0)
        assert decision.events == [NoteEvent(NOTE_OFF, 60, 0, 0)]
        assert decision.display_note == -1
        assert controller.active_note is None

        # 続く無音では何も出ない
        assert controller.process(60, 0).events == []

    def test_no_pitch_sentinel_is_silence(self, controller):
        self.start_note(controller, 60)
        decision = controller.process(-1, LOUD)
        assert [e.kind for e in decision.events] == [NOTE_OFF]
        assert decision.events[0].velocity == LOUD
        assert controller.active_note is None

    def test_short_excursion_is_suppressed(self, controller):
        self.start_note(controller, 60)
        decisions = self.hold(controller, 62, controller.min_stable_frames)
        decisions += self.hold(controller, 60, 5)
        assert self.all_events(decisions) == []
        assert all(d.display_note == 60 for d in decisions)
        assert controller.active_note == 60

    def test_persistent_change_emits_off_then_on(self, controller):
        self.start_note(controller, 60)
        decisions = self.hold(controller, 62, 1 + controller.min_stable_frames, loudness=90)

        assert self.all_events(decisions[:-1]) == []
        assert decisions[-1].events == [
            NoteEvent(NOTE_OFF, 60, 90, 0),
            NoteEvent(NOTE_ON, 62, 90, 0),
        ]
        assert controller.active_note == 62

    def test_alternating_candidates_never_switch(self, controller):
        self.start_note(controller, 60)
        decisions = []
        for _ in range(10):
            decisions += self.hold(controller, 62, 2)
            decisions += self.hold(controller, 64, 2)
        assert self.all_events(decisions) == []
        assert controller.active_note == 60

    def test_monophonic_invariant(self, controller):
        sounding = None
        pattern = [60] * 5 + [62] * 5 + [0] * 2 + [64] * 6 + [65] * 1 + [64] * 3
        for note in pattern:
            for event in controller.process(note, LOUD).events:
                if event.kind == NOTE_ON:
                    assert sounding is None
                    sounding = event.note
                else:
                    assert event.note == sounding
                    sounding = None
        assert sounding == controller.active_note

    def test_velocity_is_clamped(self, controller):
        decisions = self.hold(controller, 60, 4, loudness=500)
        assert decisions[-1].events[0].velocity == 127

    def test_channel_is_attached(self):
        controller = NoteEventController(min_stable_frames=1, channel=3)
        decisions = [controller.process(67, LOUD) for _ in range(2)]
        assert decisions[-1].events[0].channel == 3

    def test_all_notes_off(self, controller):
        assert controller.all_notes_off() == []
        self.start_note(controller, 60)
        assert controller.all_notes_off() == [NoteEvent(NOTE_OFF, 60, 0, 0)]
        assert controller.active_note is None
        assert controller.all_notes_off() == []
