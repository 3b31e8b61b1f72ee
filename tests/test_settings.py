import json

import pytest

from doseengine.database import DoseDatabase
from doseengine.settings import AppSettings, SettingsStore, coerce_setting, merge_settings
from doseengine.types import BSAFormula, CreatinineUnit


@pytest.fixture
def mirror(tmp_path):
    return tmp_path / "settings.json"


async def test_defaults(db, mirror):
    store = SettingsStore(db, mirror)
    settings = await store.load_settings()
    assert settings == AppSettings()
    assert store.initialized and not store.loading


async def test_save_persists_to_database_and_mirror(db, mirror):
    changes = []
    store = SettingsStore(db, mirror, on_change=lambda k, v: changes.append((k, v)))
    await store.load_settings()
    assert await store.set_bsa_formula(BSAFormula.XU_WENSHENG)
    assert await store.toggle_theme()

    assert changes == [("bsa_formula", BSAFormula.XU_WENSHENG), ("theme", "dark")]
    assert await db.get_all_settings() == {"bsa_formula": "xu_wensheng", "theme": "dark"}
    assert json.loads(mirror.read_text())["theme"] == "dark"

    reloaded = SettingsStore(db, mirror)
    assert (await reloaded.load_settings()).bsa_formula is BSAFormula.XU_WENSHENG


async def test_falls_back_to_mirror(tmp_path, mirror):
    mirror.write_text(json.dumps({"theme": "dark", "default_creatinine_unit": "mg"}))
    store = SettingsStore(DoseDatabase(tmp_path / "closed.db"), mirror)
    settings = await store.load_settings()
    assert settings.theme == "dark"
    assert settings.default_creatinine_unit is CreatinineUnit.MG


async def test_database_failure_keeps_in_memory_value(tmp_path, mirror):
    store = SettingsStore(DoseDatabase(tmp_path / "closed.db"), mirror)
    await store.load_settings()
    assert not await store.set_theme("dark")
    assert store.error == "Failed to save settings"
    assert store.settings.theme == "dark"
    assert json.loads(mirror.read_text())["theme"] == "dark"


async def test_invalid_values_rejected(db, mirror):
    store = SettingsStore(db, mirror)
    await store.load_settings()
    with pytest.raises(ValueError):
        await store.set_theme("purple")
    with pytest.raises(ValueError):
        await store.save_settings({"theme": "dark", "font": "large"})
    assert store.settings.theme == "light"


async def test_reset(db, mirror):
    store = SettingsStore(db, mirror)
    await store.load_settings()
    await store.save_settings({"theme": "dark", "bsa_formula": "dubois"})
    assert await store.reset_settings()
    assert store.settings == AppSettings()
    assert await db.get_all_settings() == {}


def test_coerce_and_merge():
    assert coerce_setting("bsa_formula", "dubois") is BSAFormula.DUBOIS
    assert coerce_setting("default_creatinine_unit", "umol") is CreatinineUnit.UMOL
    with pytest.raises(ValueError):
        coerce_setting("bsa_formula", "boyd")
    merged = merge_settings(AppSettings(), {"theme": "dark", "bsa_formula": "boyd", "unknown": 1})
    assert merged.theme == "dark"
    assert merged.bsa_formula is BSAFormula.MOSTELLER
