"""In-memory views over the database used by the UI.

Storage failures are caught here: they are logged, a short message is left on
``store.error`` and the in-memory lists keep their previous contents.
"""

from __future__ import annotations

import logging
from typing import Optional

import aiosqlite

from .database import DoseDatabase
from .errors import SessionStateError, StorageError
from .records import DoseLine, HistoryRecord, PatientRecord
from .session import Session

_LOGGER = logging.getLogger(__name__)

# Uninitialized database raises RuntimeError
STORAGE_ERRORS = (aiosqlite.Error, OSError, RuntimeError, StorageError)

UNNAMED_PATIENT = "Unnamed"


class PatientStore:
    """Saved patients, newest first."""

    def __init__(self, db: DoseDatabase) -> None:
        self._db = db
        self.patients: list[PatientRecord] = []
        self.loading = False
        self.error: Optional[str] = None

    async def load_patients(self) -> bool:
        self.loading = True
        self.error = None
        try:
            self.patients = await self._db.get_patients()
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to load patients")
            self.error = "Failed to load patient list"
            return False
        finally:
            self.loading = False

    async def add_patient(self, patient: PatientRecord) -> Optional[int]:
        self.loading = True
        self.error = None
        try:
            patient_id = await self._db.add_patient(patient)
            self.patients = await self._db.get_patients()
            return patient_id
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to add patient %s", patient.name)
            self.error = "Failed to add patient"
            return None
        finally:
            self.loading = False

    async def update_patient(self, patient: PatientRecord) -> bool:
        self.loading = True
        self.error = None
        try:
            updated = await self._db.update_patient(patient)
            self.patients = await self._db.get_patients()
            return updated
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to update patient %s", patient.id)
            self.error = "Failed to update patient"
            return False
        finally:
            self.loading = False

    async def delete_patient(self, patient_id: int) -> bool:
        """Delete a patient together with its history."""
        self.loading = True
        self.error = None
        try:
            await self._db.delete_patient(patient_id)
            self.patients = await self._db.get_patients()
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to delete patient %s", patient_id)
            self.error = "Failed to delete patient"
            return False
        finally:
            self.loading = False

    async def get_patient(self, patient_id: int) -> Optional[PatientRecord]:
        try:
            return await self._db.get_patient(patient_id)
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to read patient %s", patient_id)
            self.error = "Failed to load patient"
            return None

    async def save_from_session(self, session: Session, name: Optional[str] = None) -> Optional[int]:
        """
        Store the session's current patient. A name is required.
        On success the session is linked to the new patient record.
        """
        if not (name or session.patient.name):
            raise SessionStateError("Patient name is required")
        record = session.patient_for_save(name)
        patient_id = await self.add_patient(record)
        if patient_id is not None:
            session.link_patient(record)
        return patient_id

    @staticmethod
    def load_to_session(session: Session, patient: PatientRecord) -> None:
        session.load_patient(patient)


class HistoryStore:
    """Saved calculations, newest first."""

    def __init__(self, db: DoseDatabase) -> None:
        self._db = db
        self.records: list[HistoryRecord] = []
        self.loading = False
        self.error: Optional[str] = None

    async def load_history(self, limit: Optional[int] = None) -> bool:
        self.loading = True
        self.error = None
        try:
            self.records = await self._db.get_history(limit)
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to load history")
            self.error = "Failed to load history"
            return False
        finally:
            self.loading = False

    async def add_record(self, session: Session, patient_name: Optional[str] = None,
                         patient_id: Optional[int] = None) -> Optional[int]:
        """
        Save the session's last calculation, linked to `patient_id` or else to the
        session's saved patient.
        Raises SessionStateError when no regimen is selected or nothing was calculated.
        """
        regimen, result = session.regimen, session.result
        if regimen is None or result is None:
            raise SessionStateError("Complete the calculation first")

        record = HistoryRecord(
            patient_id=patient_id if patient_id is not None else session.patient_id,
            patient_name=patient_name or session.patient.name or UNNAMED_PATIENT,
            regimen_id=regimen.id,
            regimen_name=regimen.name,
            cancer_type=session.cancer_type or regimen.cancer_type,
            cycle=session.cycle,
            bsa=result.bsa,
            ccr=result.ccr,
            doses=[
                DoseLine(d.name, d.calculated_dose_mg, d.dosage_unit)
                for d in result.drugs
            ],
            reactions=dict(session.adverse_reactions),
        )

        self.loading = True
        self.error = None
        try:
            record_id = await self._db.add_history(record)
            self.records = await self._db.get_history()
            return record_id
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to save history record")
            self.error = "Failed to save history record"
            return None
        finally:
            self.loading = False

    async def delete_record(self, record_id: int) -> bool:
        self.loading = True
        self.error = None
        try:
            await self._db.delete_history(record_id)
            self.records = await self._db.get_history()
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to delete history record %s", record_id)
            self.error = "Failed to delete record"
            return False
        finally:
            self.loading = False

    async def clear_history(self) -> bool:
        self.loading = True
        self.error = None
        try:
            await self._db.clear_history()
            self.records = []
            return True
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to clear history")
            self.error = "Failed to clear history"
            return False
        finally:
            self.loading = False

    async def get_history_by_patient(self, patient_id: int) -> list[HistoryRecord]:
        try:
            return await self._db.get_history_by_patient(patient_id)
        except STORAGE_ERRORS:
            _LOGGER.exception("Failed to load history for patient %s", patient_id)
            self.error = "Failed to load history"
            return []

    def recent_patient_names(self, limit: int = 5) -> list[str]:
        """Distinct patient names from the loaded records, most recent first."""
        names: list[str] = []
        for record in self.records:
            if record.patient_name not in names:
                names.append(record.patient_name)
            if len(names) >= limit:
                break
        return names
