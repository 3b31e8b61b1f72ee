from dataclasses import replace

import pytest

from doseengine.catalog import get_regimen
from doseengine.database import DoseDatabase
from doseengine.errors import SessionStateError
from doseengine.records import PatientRecord
from doseengine.session import Session
from doseengine.stores import UNNAMED_PATIENT, HistoryStore, PatientStore
from doseengine.types import PatientBiometrics, Sex


@pytest.fixture
def calculated_session(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    s.set_regimen(get_regimen("pp_carboplatin"))
    s.set_cycle(2)
    s.set_adverse_reactions({"neutropenia": 2})
    s.calculate()
    return s


async def test_save_patient_from_session(db, calculated_session):
    store = PatientStore(db)
    pid = await store.save_from_session(calculated_session)
    assert pid is not None and store.error is None
    assert [p.name for p in store.patients] == ["Test Patient"]
    assert store.patients[0].bsa == 1.82
    assert store.patients[0].last_regimen == "pp_carboplatin"


async def test_save_patient_needs_name(db):
    store = PatientStore(db)
    with pytest.raises(SessionStateError):
        await store.save_from_session(Session())
    assert store.patients == []


async def test_patient_update_and_delete(db):
    store = PatientStore(db)
    pid = await store.add_patient(PatientRecord(name="Carol", height_cm=160, weight_kg=50, age=45))
    patient = await store.get_patient(pid)
    patient.notes = "second line"
    assert await store.update_patient(patient)
    assert store.patients[0].notes == "second line"
    assert await store.delete_patient(pid)
    assert store.patients == []


async def test_history_record_from_session(db, calculated_session):
    store = HistoryStore(db)
    rid = await store.add_record(calculated_session)
    assert rid is not None
    record = store.records[0]
    assert record.patient_name == "Test Patient"
    assert record.regimen_id == "pp_carboplatin"
    assert record.cancer_type == "nsclc"
    assert record.cycle == 2
    assert record.reactions == {"neutropenia": 2}
    assert {d.drug_name: d.calculated_dose for d in record.doses} == {"Pemetrexed": 910, "Carboplatin": 514}


async def test_history_needs_calculation(db, reference_patient):
    store = HistoryStore(db)
    s = Session()
    s.set_patient(reference_patient)
    with pytest.raises(SessionStateError):
        await store.add_record(s)
    s.set_regimen(get_regimen("folfiri"))
    with pytest.raises(SessionStateError):
        await store.add_record(s)


async def test_unnamed_and_recent_names(db, calculated_session):
    store = HistoryStore(db)
    await store.add_record(calculated_session, patient_name="Dan")
    await store.add_record(calculated_session)
    calculated_session.set_patient(PatientBiometrics(height_cm=150, weight_kg=50, sex=Sex.MALE))
    calculated_session.calculate()
    await store.add_record(calculated_session)
    assert store.recent_patient_names() == [UNNAMED_PATIENT, "Test Patient", "Dan"]
    assert store.recent_patient_names(limit=1) == [UNNAMED_PATIENT]

    assert await store.load_history(limit=2)
    assert len(store.records) == 2
    assert await store.clear_history()
    assert store.records == []


async def test_storage_failure_keeps_state(tmp_path):
    closed = DoseDatabase(tmp_path / "closed.db")
    patients = PatientStore(closed)
    existing = [PatientRecord(name="Kept", id=7)]
    patients.patients = list(existing)

    assert not await patients.load_patients()
    assert patients.error == "Failed to load patient list"
    assert patients.patients == existing
    assert patients.loading is False

    assert await patients.add_patient(PatientRecord(name="New")) is None
    assert patients.error == "Failed to add patient"
    assert not await patients.delete_patient(7)
    assert patients.patients == existing

    history = HistoryStore(closed)
    assert not await history.load_history()
    assert history.error == "Failed to load history"
    assert await history.get_history_by_patient(7) == []
    assert not await history.clear_history()
    assert history.error == "Failed to clear history"


async def test_calculate_save_patient_then_history(db, calculated_session, reference_patient):
    patients, history = PatientStore(db), HistoryStore(db)
    pid = await patients.save_from_session(calculated_session, "Alice")
    assert calculated_session.patient_id == pid
    assert calculated_session.result is not None

    # the window re-reads the form, which now shows the saved name
    calculated_session.set_patient(replace(reference_patient, name="Alice"))
    rid = await history.add_record(calculated_session)
    assert rid is not None and history.error is None
    assert history.records[0].patient_id == pid
    assert history.records[0].patient_name == "Alice"

    assert await patients.delete_patient(pid)
    assert await history.load_history()
    assert history.records == []


async def test_explicit_patient_id_wins(db, calculated_session):
    history = HistoryStore(db)
    calculated_session.patient_id = 4
    await history.add_record(calculated_session, patient_id=9)
    assert history.records[0].patient_id == 9
