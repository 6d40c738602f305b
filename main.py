import flet as ft
import logging
import sys
from pathlib import Path

from utils.logger_manager import LoggerManager
from main_controller import MainController
from main_view import MainView

# --- パス設定 ---
def get_base_dir() -> Path:
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).resolve().parent

BASE_DIR = get_base_dir()
LOG_DIR = BASE_DIR / "log"
CONFIG_FILE_PATH = BASE_DIR / "config.ini"


def main(page: ft.Page):
    page.title = "Vocal -> MIDI"
    page.window_width = 760
    page.window_height = 520
    page.padding = 20
    page.theme_mode = ft.ThemeMode.DARK

    try:
        controller = MainController(page, config_path=str(CONFIG_FILE_PATH))
    except Exception as e:
        logging.error(f"初期化エラー: {e}")
        page.add(ft.Text(f"起動エラー: {e}", color="red"))
        return

    view = MainView(controller)
    page.add(view.build())
    controller.set_view(view)
    controller.start()

    def on_window_event(e):
        if e.data == "close":
            logging.info("終了処理...")
            try:
                controller.cleanup()
            finally:
                page.window_destroy()

    page.window_prevent_close = True
    page.on_window_event = on_window_event


def run():
    LoggerManager.setup_logging(LOG_DIR)
    ft.app(target=main)


if __name__ == "__main__":
    run()
