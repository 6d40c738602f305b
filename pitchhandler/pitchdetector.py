# v6.0
import pyaudio
import logging
import time
import threading
from typing import Any, Callable, Dict, Optional

import numpy as np

from pitchhandler.pitch_analyzer import DEFAULT_SETTINGS, FrameResult, PitchAnalyzer
from pitchhandler.note_event_controller import NoteEvent
from utils.ring_buffer import RingSampleBuffer


class PitchDetector:
    """
    マイク入力 -> ノートイベントのランタイム。

    [Producer] PyAudio コールバックが int16 を float (-1..1) に変換して RingSampleBuffer へ書き込む。
    [Consumer] 解析スレッドが 1/analysis_rate 秒ごとに満杯の窓をスナップショットし、
               PitchAnalyzer で処理してイベントを MIDI 送信先へ、表示値を UI へ渡す。

    バッファが満杯でないフレームは単にスキップする (エラーではない)。
    PitchAnalyzer の状態は analysis_lock で保護し、設定変更と解析が衝突しないようにする。
    """

    def __init__(self,
                 ui_callback: Optional[Callable[[FrameResult], None]],
                 config: Optional[Dict[str, Any]] = None,
                 midi_sink: Optional[Callable[[NoteEvent], Any]] = None):

        self.ui_callback = ui_callback
        self.midi_sink = midi_sink
        self.pa: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None
        self._is_running = False

        self.settings = dict(DEFAULT_SETTINGS)
        if config:
            self.settings.update(config)

        self.analyzer = PitchAnalyzer(self.settings)
        self.buffer = RingSampleBuffer(self.analyzer.buffer_capacity)

        self.analysis_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self.analysis_lock = threading.Lock()

        logging.info(f"PitchDetector initialized (window={self.buffer.capacity} samples).")

    @property
    def sample_rate(self) -> int:
        return int(self.settings["sample_rate"])

    @property
    def is_running(self) -> bool:
        return self._is_running

    def update_settings(self, new_config: Dict[str, Any]):
        """
        設定更新。窓サイズが変わる設定はストリームを止めてバッファを作り直す。
        """
        restart_keys = ["sample_rate", "frame_duration"]
        needs_restart = any(key in new_config for key in restart_keys)

        if needs_restart:
            was_running = self._is_running
            if was_running:
                self.stop_stream()

            with self.analysis_lock:
                self.settings.update(new_config)
                self.analyzer.update_settings(new_config)
                self.buffer = RingSampleBuffer(self.analyzer.buffer_capacity)

            if was_running:
                time.sleep(0.1)  # PortAudioのリソース解放待ち
                self.start_stream()
        else:
            with self.analysis_lock:
                self.settings.update(new_config)
                self.analyzer.update_settings(new_config)

    def start_stream(self):
        if self.stream and self.stream.is_active():
            return

        try:
            self.pa = pyaudio.PyAudio()
            self._is_running = True
            self.stop_event.clear()

            with self.analysis_lock:
                self.analyzer.reset_state()
            self.buffer.clear()

            self.analysis_thread = threading.Thread(target=self._analysis_loop, daemon=True)
            self.analysis_thread.start()

            self.stream = self.pa.open(
                format=pyaudio.paInt16, channels=1, rate=self.sample_rate,
                input=True, frames_per_buffer=1024,
                stream_callback=self._pyaudio_callback
            )
            self.stream.start_stream()
            logging.info("Audio stream & Analysis thread started.")
        except (OSError, IOError) as e:
            logging.error(f"Stream start error: {e}")
            self.stop_stream()
            raise

    def stop_stream(self):
        """
        終了シーケンス。どの段階で失敗しても後続の解放処理は必ず実行する:
          1. 解析スレッド停止
          2. 発音中ノートの note_off 送信
          3. 入力ストリーム停止
          4. PyAudio 終了
        """
        self._is_running = False
        self.stop_event.set()

        if self.analysis_thread and self.analysis_thread.is_alive():
            self.analysis_thread.join(timeout=0.5)
        self.analysis_thread = None

        try:
            with self.analysis_lock:
                pending = self.analyzer.controller.all_notes_off()
            for event in pending:
                self._emit(event)
        finally:
            try:
                if self.stream:
                    self.stream.stop_stream()
                    self.stream.close()
            except (OSError, IOError) as e:
                logging.warning(f"Stream close error: {e}")
            finally:
                self.stream = None
                if self.pa:
                    self.pa.terminate()
                    self.pa = None
        logging.info("Audio stream stopped.")

    def _pyaudio_callback(self, in_data, frame_count, time_info, status):
        if not self._is_running:
            return (None, pyaudio.paComplete)

        samples = np.frombuffer(in_data, dtype="<i2").astype(np.float32) / 32768.0
        self.buffer.extend(samples)
        return (None, pyaudio.paContinue)

    def process_frame(self) -> Optional[FrameResult]:
        """[Consumer] 1フレーム分の処理。窓が揃っていなければ None。"""
        window = self.buffer.snapshot()
        if window is None:
            return None

        with self.analysis_lock:
            result = self.analyzer.process(window)

        for event in result.decision.events:
            self._emit(event)

        if self.ui_callback:
            self.ui_callback(result)
        return result

    def _emit(self, event: NoteEvent):
        logging.debug(f"{event.kind}: note={event.note} vel={event.velocity}")
        if self.midi_sink:
            self.midi_sink(event)

    def _analysis_loop(self):
        interval = 1.0 / float(self.settings["analysis_rate"])
        while not self.stop_event.wait(interval):
            try:
                self.process_frame()
            except Exception as e:
                # UI/MIDI 側の一時的なエラーで解析ループを止めない
                logging.warning(f"Analysis Loop Error: {e}")
