import pytest
import pytest_asyncio

from doseengine.database import DoseDatabase
from doseengine.types import CreatinineUnit, PatientBiometrics, Sex


@pytest_asyncio.fixture
async def db(tmp_path):
    """A fresh on-disk database per test."""
    database = DoseDatabase(tmp_path / "test.db")
    await database.async_setup()
    yield database
    await database.async_close()


@pytest.fixture
def reference_patient():
    """170 cm, 70 kg, 60-year-old man with creatinine 88.4 µmol/L (= 1.0 mg/dL)."""
    return PatientBiometrics(
        height_cm=170, weight_kg=70, age=60, sex=Sex.MALE,
        creatinine=88.4, creatinine_unit=CreatinineUnit.UMOL, name="Test Patient",
    )
