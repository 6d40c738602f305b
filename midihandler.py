#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
MIDI出力 (mido) を管理するモジュール。

ポートのオープン、ノートイベントの送信、リソース解放をカプセル化します。
"""

import logging
from typing import Optional

import mido

from pitchhandler.note_event_controller import NoteEvent


class MidiHandler:
    """
    MIDI送信に関連するロジックを管理するクラス。

    Attributes:
        port_name (str): 仮想ポート名、または接続先の既存ポート名。
        port (Optional[mido.ports.BaseOutput]): オープン中の出力ポート。
    """

    def __init__(self, port_name: str = "Vocal", virtual: bool = True):
        """
        出力ポートを開きます。

        Args:
            port_name (str): ポート名。
            virtual (bool): True の場合、仮想ポートを作成します (rtmidi バックエンド)。

        Raises:
            OSError: ポートのオープンに失敗した場合。
        """
        self.port_name = port_name
        self.port: Optional[mido.ports.BaseOutput] = None
        logging.info(f"MIDI出力ポートを開いています: {port_name} (virtual={virtual})")
        try:
            self.port = mido.open_output(port_name, virtual=virtual)
            logging.info("MIDIポートのオープンが完了しました。")
        except (OSError, IOError) as e:
            logging.error(f"MIDIポートのオープンに失敗しました: {e}")
            raise  # エラーを呼び出し元に伝播させる

    @staticmethod
    def to_message(event: NoteEvent) -> mido.Message:
        return mido.Message(event.kind, note=event.note, velocity=event.velocity, channel=event.channel)

    def send(self, event: NoteEvent) -> bool:
        """
        ノートイベントを送信します。

        Returns:
            bool: 送信に成功した場合はTrue、失敗した場合はFalse。
        """
        if self.port is None:
            logging.warning(f"MIDIポートが閉じているため送信できません: {event}")
            return False
        try:
            self.port.send(self.to_message(event))
            logging.debug(f"MIDI送信: {event.kind} note={event.note} vel={event.velocity}")
            return True
        except (OSError, ValueError) as e:
            logging.error(f"MIDI送信エラー ({event.kind} {event.note}): {e}")
            return False

    def close(self):
        """
        出力ポートを閉じます。複数回呼んでも安全です。
        """
        if self.port is None:
            return
        logging.debug("MIDIポートを閉じています...")
        try:
            self.port.close()
        finally:
            self.port = None
