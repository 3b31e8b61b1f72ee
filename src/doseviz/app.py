# src/doseviz/app.py
import asyncio
import logging
import os
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from doseengine.database import DoseDatabase
from doseengine.session import Session
from doseengine.settings import MIRROR_FILENAME, SettingsStore
from doseengine.stores import STORAGE_ERRORS, HistoryStore, PatientStore

from .ui.main_window import MainWindow

_LOGGER = logging.getLogger(__name__)

DB_FILENAME = "doseviz.db"


def data_dir() -> Path:
    """Where the database and settings mirror live. DOSEVIZ_DATA_DIR overrides ~/.doseviz."""
    return Path(os.environ.get("DOSEVIZ_DATA_DIR") or Path.home() / ".doseviz")


def main() -> int:
    logging.basicConfig(
        level=os.environ.get("DOSEVIZ_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    directory = data_dir()
    directory.mkdir(parents=True, exist_ok=True)

    loop = asyncio.new_event_loop()
    db = DoseDatabase(directory / DB_FILENAME)
    try:
        loop.run_until_complete(db.async_setup())
    except STORAGE_ERRORS:
        # keep running: stores report failures and settings fall back to the mirror
        _LOGGER.exception("Could not open database in %s", directory)

    try:
        settings = SettingsStore(db, directory / MIRROR_FILENAME)
        loop.run_until_complete(settings.load_settings())
        session = Session(settings.settings.bsa_formula)

        app = QApplication(sys.argv)
        window = MainWindow(loop, session, PatientStore(db), HistoryStore(db), settings)
        window.show()
        return app.exec()
    finally:
        loop.run_until_complete(db.async_close())
        loop.close()
