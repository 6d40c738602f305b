# v6.0
import logging
import flet as ft
from typing import Optional, TYPE_CHECKING

from midihandler import MidiHandler
from config_manager import ConfigManager
from pitchhandler.pitchdetector import PitchDetector
from pitchhandler.pitch_analyzer import FrameResult
from pitchhandler.midi_helper import midi_note_to_note_name

if TYPE_CHECKING:
    from main_view import MainView


class MainController:
    """
    アプリのロジック、イベント処理、状態管理を担当するクラス。
    PitchDetector の解析結果を画面へ反映し、ノートイベントを MidiHandler へ流す。
    """
    def __init__(self, page: ft.Page, config_path: str = "config.ini"):
        self.page = page
        self.is_closing = False

        self.config_manager = ConfigManager(config_path)
        config_dict = self.config_manager.get_all_settings_dict()

        self.midi_handler: Optional[MidiHandler] = None
        try:
            self.midi_handler = MidiHandler(
                port_name=config_dict["midi_port_name"],
                virtual=config_dict["virtual_port"],
            )
        except (OSError, IOError) as e:
            # MIDIなしでも表示だけは動かす
            logging.error(f"MIDI output unavailable: {e}")

        self.pitch_detector = PitchDetector(
            self._update_ui_callback,
            config=config_dict,
            midi_sink=self.midi_handler.send if self.midi_handler else None,
        )

        self.view: Optional["MainView"] = None
        self._callback_count = 0

    def set_view(self, view: "MainView"):
        self.view = view
        self._initialize_ui_values()

    def _initialize_ui_values(self):
        """設定値に基づいてUIコンポーネントの初期状態を設定"""
        if not self.view: return
        settings = self.view.settings_view

        silence = self.config_manager.get_silence_threshold()
        settings.silence_slider.value = silence
        settings.silence_text.value = f"無音しきい値 (ベロシティ): {silence:.0f}"

        debounce = self.config_manager.get_note_min_stable_frames()
        settings.debounce_slider.value = debounce
        settings.debounce_text.value = f"ノート切替の確定フレーム数: {debounce}"

        yin = self.config_manager.get_yin_threshold()
        settings.yin_slider.value = yin
        settings.yin_text.value = f"検出信頼度(YIN): {yin:.2f}"

        if self.midi_handler is None:
            self.view.midi_status_text.value = "MIDI: 出力ポートなし"
            self.view.midi_status_text.color = ft.Colors.RED_300
        else:
            self.view.midi_status_text.value = f"MIDI: {self.midi_handler.port_name}"

    # --- Stream ---

    def start(self):
        try:
            self.pitch_detector.start_stream()
        except (OSError, IOError) as e:
            logging.error(f"マイク開始失敗: {e}")
            self.page.open(ft.SnackBar(ft.Text(f"マイクを開始できません: {e}")))
        self._update_toggle_button_state()

    def toggle_stream_click(self, e):
        if self.pitch_detector.is_running:
            self.pitch_detector.stop_stream()
            self._update_toggle_button_state()
        else:
            self.start()

    def _update_toggle_button_state(self):
        if not self.view: return
        if self.pitch_detector.is_running:
            self.view.toggle_button.text = "停止"
            self.view.toggle_button.icon = ft.Icons.STOP_CIRCLE
            self.view.toggle_button.style.bgcolor = ft.Colors.RED_700
        else:
            self.view.toggle_button.text = "開始"
            self.view.toggle_button.icon = ft.Icons.MIC
            self.view.toggle_button.style.bgcolor = ft.Colors.BLUE_700
        self.page.update()

    # --- Setting Handlers ---

    def on_silence_change(self, e):
        val = float(e.control.value)
        self.view.settings_view.silence_text.value = f"無音しきい値 (ベロシティ): {val:.0f}"
        self.pitch_detector.update_settings({"silence_threshold": val})
        self.page.update()

    def on_silence_change_end(self, e):
        self.config_manager.set_silence_threshold(float(e.control.value))

    def on_debounce_change(self, e):
        val = int(e.control.value)
        self.view.settings_view.debounce_text.value = f"ノート切替の確定フレーム数: {val}"
        self.pitch_detector.update_settings({"note_min_stable_frames": val})
        self.page.update()

    def on_debounce_change_end(self, e):
        self.config_manager.set_note_min_stable_frames(int(e.control.value))

    def on_yin_change(self, e):
        val = float(e.control.value)
        self.view.settings_view.yin_text.value = f"検出信頼度(YIN): {val:.2f}"
        self.pitch_detector.update_settings({"yin_threshold": val})
        self.page.update()

    def on_yin_change_end(self, e):
        self.config_manager.set_yin_threshold(float(e.control.value))

    # --- Analysis callback (解析スレッドから呼ばれる) ---

    def _update_ui_callback(self, result: FrameResult):
        if self.is_closing or not self.view: return
        self._callback_count += 1

        reading = result.reading
        self.view.volume_bar.value = result.display_volume
        self.view.pitch_text.value = f"{reading.pitch:.2f} Hz" if reading.pitch > 0 else "--- Hz"

        note = result.decision.display_note
        if note >= 0:
            self.view.result_text.value = midi_note_to_note_name(note)
            self.view.midi_text.value = f"MIDI {note}"
        else:
            self.view.result_text.value = "---"
            self.view.midi_text.value = "MIDI ---"

        self.view.result_text.color = ft.Colors.GREEN_300 if reading.is_stable else ft.Colors.CYAN_200
        self.view.stable_text.value = f"{reading.note_name} ({'安定' if reading.is_stable else '不安定'})"

        if self._callback_count % 5 == 0 or result.decision.events:
            self.page.update()

    def cleanup(self):
        self.is_closing = True
        try:
            self.pitch_detector.stop_stream()
        finally:
            if self.midi_handler:
                self.midi_handler.close()
