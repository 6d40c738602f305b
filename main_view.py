# v6.0
import flet as ft
from typing import TYPE_CHECKING

from settings_view import SettingsView

if TYPE_CHECKING:
    from main_controller import MainController

class MainView:
    """
    メイン画面のレイアウトとUIコンポーネントの定義を行うクラス。
    大きく音名、その下に MIDI 番号・周波数・安定状態・入力レベルを表示する。
    """
    def __init__(self, controller: "MainController"):
        self.c = controller

        self.result_text = ft.Text(
            value="---", size=56, weight="bold",
            color=ft.Colors.CYAN_200, text_align=ft.TextAlign.CENTER
        )
        self.midi_text = ft.Text("MIDI ---", size=16, color=ft.Colors.GREY_300)
        self.pitch_text = ft.Text("--- Hz", size=16, color=ft.Colors.GREY_300)
        self.stable_text = ft.Text("N/A", size=12, color=ft.Colors.GREY_500)
        self.midi_status_text = ft.Text("MIDI: ---", size=12, color=ft.Colors.GREY_400)

        self.volume_bar = ft.ProgressBar(width=380, value=0, color=ft.Colors.GREEN_400)

        self.toggle_button = ft.ElevatedButton(
            text="開始", icon=ft.Icons.MIC,
            on_click=self.c.toggle_stream_click, width=200, height=50,
            style=ft.ButtonStyle(shape=ft.RoundedRectangleBorder(radius=10), bgcolor=ft.Colors.BLUE_700, color=ft.Colors.WHITE)
        )

        self.settings_view = SettingsView(controller)

    def build(self):
        top_panel = ft.Container(
            content=ft.Column([
                ft.Row([
                    ft.Text("Vocal -> MIDI", size=14, color=ft.Colors.GREY_400),
                    ft.IconButton(ft.Icons.SETTINGS, on_click=self.toggle_settings_visibility)
                ], alignment="spaceBetween"),
                ft.Container(content=self.result_text, height=110, alignment=ft.alignment.center),
                ft.Row([self.midi_text, self.pitch_text], alignment="spaceEvenly"),
                self.stable_text,
                ft.Text("入力レベル", size=12),
                self.volume_bar,
            ], horizontal_alignment="center"),
            padding=20, bgcolor=ft.Colors.GREY_900, border_radius=15
        )

        main_column = ft.Column([
            top_panel,
            ft.Divider(height=20),
            ft.Container(self.midi_status_text, alignment=ft.alignment.center),
            ft.Container(self.toggle_button, alignment=ft.alignment.center, padding=10)
        ], expand=True)

        return ft.Row([main_column, self.settings_view.container], expand=True, vertical_alignment="start")

    def toggle_settings_visibility(self, e):
        self.settings_view.toggle_visibility()
        self.page.update()

    @property
    def page(self): return self.c.page
