"""User preferences, stored as settings rows with a JSON mirror file.

The mirror is written on every change and read back when the database
cannot be opened, so preferences survive a broken or missing database.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from .database import DoseDatabase
from .stores import STORAGE_ERRORS
from .types import BSAFormula, CreatinineUnit

_LOGGER = logging.getLogger(__name__)

THEMES = ("light", "dark")
MIRROR_FILENAME = "settings.json"


@dataclass
class AppSettings:
    bsa_formula: BSAFormula = BSAFormula.MOSTELLER
    theme: str = "light"
    default_creatinine_unit: CreatinineUnit = CreatinineUnit.UMOL

    def to_dict(self) -> dict[str, str]:
        return {k: (v.value if hasattr(v, "value") else v) for k, v in asdict(self).items()}


SETTING_KEYS = tuple(f.name for f in fields(AppSettings))


def coerce_setting(key: str, value: Any) -> Any:
    """Validate a raw setting value. Raises ValueError for unknown keys or values."""
    if key == "bsa_formula":
        return BSAFormula(value)
    if key == "default_creatinine_unit":
        return CreatinineUnit(value)
    if key == "theme":
        if value not in THEMES:
            raise ValueError(f"theme must be one of {THEMES} (got {value!r}).")
        return value
    raise ValueError(f"Unknown setting {key!r}.")


def merge_settings(base: AppSettings, raw: Mapping[str, Any]) -> AppSettings:
    """Apply stored values on top of `base`, skipping anything invalid."""
    merged = AppSettings(**{f: getattr(base, f) for f in SETTING_KEYS})
    for key, value in raw.items():
        try:
            setattr(merged, key, coerce_setting(key, value))
        except ValueError:
            _LOGGER.warning("Ignoring invalid stored setting %s=%r", key, value)
    return merged


class SettingsStore:
    """
    Current preferences.

    on_change: optional callback(key, value) fired after a value changes,
               e.g. to restyle the window when the theme flips.
    """

    def __init__(self, db: DoseDatabase, mirror_path: str | Path,
                 on_change: Optional[Callable[[str, Any], None]] = None) -> None:
        self._db = db
        self._mirror_path = Path(mirror_path)
        self.on_change = on_change
        self.settings = AppSettings()
        self.loading = False
        self.initialized = False
        self.error: Optional[str] = None

    async def load_settings(self) -> AppSettings:
        if self.initialized:
            return self.settings

        self.loading = True
        try:
            saved = await self._db.get_all_settings()
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to load settings, using mirror %s", self._mirror_path)
            saved = self._read_mirror()
        finally:
            self.loading = False

        self.settings = merge_settings(AppSettings(), saved)
        self.initialized = True
        return self.settings

    async def save_setting(self, key: str, value: Any) -> bool:
        """Change one preference. The in-memory value and mirror update even if the database write fails."""
        coerced = coerce_setting(key, value)
        setattr(self.settings, key, coerced)
        self._write_mirror()
        self._notify(key, coerced)

        self.error = None
        try:
            await self._db.set_setting(key, self.settings.to_dict()[key])
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to save setting %s", key)
            self.error = "Failed to save settings"
            return False

    async def save_settings(self, values: Mapping[str, Any]) -> bool:
        # validate everything before touching state
        coerced = {key: coerce_setting(key, value) for key, value in values.items()}
        for key, value in coerced.items():
            setattr(self.settings, key, value)
        self._write_mirror()
        for key, value in coerced.items():
            self._notify(key, value)

        self.error = None
        stored = self.settings.to_dict()
        try:
            for key in coerced:
                await self._db.set_setting(key, stored[key])
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to save settings")
            self.error = "Failed to save settings"
            return False

    async def reset_settings(self) -> bool:
        self.settings = AppSettings()
        self._write_mirror()
        for key in SETTING_KEYS:
            self._notify(key, getattr(self.settings, key))

        self.error = None
        try:
            await self._db.clear_settings()
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to reset settings")
            self.error = "Failed to reset settings"
            return False

    async def set_bsa_formula(self, formula: BSAFormula) -> bool:
        return await self.save_setting("bsa_formula", formula)

    async def set_theme(self, theme: str) -> bool:
        return await self.save_setting("theme", theme)

    async def toggle_theme(self) -> bool:
        return await self.set_theme("dark" if self.settings.theme == "light" else "light")

    # --------------------------
    # Mirror file
    # --------------------------
    def _read_mirror(self) -> dict[str, Any]:
        try:
            with open(self._mirror_path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            _LOGGER.exception("Settings mirror %s is unreadable", self._mirror_path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_mirror(self) -> None:
        try:
            self._mirror_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._mirror_path, "w", encoding="utf-8") as f:
                json.dump(self.settings.to_dict(), f, indent=2)
        except OSError:
            _LOGGER.exception("Failed to write settings mirror %s", self._mirror_path)

    def _notify(self, key: str, value: Any) -> None:
        if self.on_change is not None:
            self.on_change(key, value)
