# v2.0
import flet as ft
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from main_controller import MainController

class SettingsView:
    """
    設定パネルのUIコンポーネントとレイアウトを担当するクラス。
    初期値は MainController から設定される。
    """
    def __init__(self, controller: "MainController"):
        self.c = controller

        # Silence threshold (velocity units)
        self.silence_text = ft.Text("無音しきい値 (ベロシティ): --", size=12)
        self.silence_slider = ft.Slider(
            min=0, max=40, divisions=40, label="{value}",
            on_change=self.c.on_silence_change, on_change_end=self.c.on_silence_change_end
        )

        # Outer note debounce
        self.debounce_text = ft.Text("ノート切替の確定フレーム数: --", size=12)
        self.debounce_slider = ft.Slider(
            min=1, max=40, divisions=39, label="{value}",
            on_change=self.c.on_debounce_change, on_change_end=self.c.on_debounce_change_end
        )

        # YIN Sensitivity
        self.yin_text = ft.Text("検出信頼度(YIN): --", size=12)
        self.yin_slider = ft.Slider(
            min=0.05, max=0.40, divisions=35,
            on_change=self.c.on_yin_change, on_change_end=self.c.on_yin_change_end
        )

        self.container = ft.Container(
            width=320,
            bgcolor=ft.Colors.GREY_900,
            padding=20,
            visible=False,
            animate_opacity=200,
            border=ft.border.only(left=ft.BorderSide(1, ft.Colors.GREY_800)),
            content=ft.Column([
                ft.Row([ft.Icon(ft.Icons.TUNE), ft.Text("詳細設定", size=16, weight="bold")], alignment="center"),
                ft.Divider(),

                ft.Text("入力設定", size=14, color=ft.Colors.CYAN_100),
                self.silence_text, self.silence_slider,
                ft.Text("※値を上げると小さな音でノートが鳴らなくなります", size=10, color=ft.Colors.GREY_500),
                ft.Divider(),

                ft.Text("ノート判定", size=14, color=ft.Colors.CYAN_100),
                self.debounce_text, self.debounce_slider,
                ft.Text("※値を上げるとノートのちらつきが減り、反応が遅くなります", size=10, color=ft.Colors.GREY_500),
                self.yin_text, self.yin_slider,
                ft.Text("※値を下げると判定が厳しくなり、誤検知を防ぎます", size=10, color=ft.Colors.GREY_500),
            ], scroll=ft.ScrollMode.AUTO)
        )

    def toggle_visibility(self):
        self.container.visible = not self.container.visible
        self.container.update()
