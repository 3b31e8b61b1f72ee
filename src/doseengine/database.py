"""SQLite storage for saved patients, calculation history and settings."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from .errors import StorageError
from .records import HistoryRecord, PatientRecord, utc_now_iso
from .types import CreatinineUnit, Sex

_LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = 1

CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS patients (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    height_cm REAL NOT NULL DEFAULT 0,
    weight_kg REAL NOT NULL DEFAULT 0,
    age REAL NOT NULL DEFAULT 0,
    sex INTEGER NOT NULL DEFAULT 1,
    creatinine REAL,
    creatinine_unit TEXT NOT NULL DEFAULT 'umol',
    bsa REAL,
    ccr REAL,
    last_cycle INTEGER,
    last_regimen TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    patient_id INTEGER,
    patient_name TEXT NOT NULL,
    regimen_id TEXT NOT NULL,
    regimen_name TEXT NOT NULL,
    cancer_type TEXT NOT NULL,
    cycle INTEGER NOT NULL,
    bsa REAL NOT NULL,
    ccr REAL NOT NULL,
    doses TEXT NOT NULL DEFAULT '[]',
    reactions TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_patients_created
    ON patients(created_at);
CREATE INDEX IF NOT EXISTS idx_history_patient
    ON history(patient_id, created_at);
CREATE INDEX IF NOT EXISTS idx_history_created
    ON history(created_at);
"""

_PATIENT_COLUMNS = (
    "name", "height_cm", "weight_kg", "age", "sex", "creatinine", "creatinine_unit",
    "bsa", "ccr", "last_cycle", "last_regimen", "notes",
)


class DoseDatabase:
    """Async SQLite database wrapper for the dose calculator."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def async_setup(self) -> None:
        """Open the database and create tables if needed."""
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA busy_timeout = 5000")
        await self._db.executescript(CREATE_TABLES)
        await self._db.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        await self._db.commit()
        _LOGGER.debug("Dose database initialized at %s", self._db_path)

    async def async_close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Dose database is not initialized")
        return self._db

    # ── Patients ─────────────────────────────────────────────────────────────

    async def get_patients(self) -> list[PatientRecord]:
        """All saved patients, newest first."""
        cursor = await self._conn().execute(
            "SELECT * FROM patients ORDER BY created_at DESC, id DESC"
        )
        rows = await cursor.fetchall()
        return [PatientRecord.from_row(row) for row in rows]

    async def get_patient(self, patient_id: int) -> PatientRecord | None:
        cursor = await self._conn().execute(
            "SELECT * FROM patients WHERE id = ?", (patient_id,)
        )
        row = await cursor.fetchone()
        return PatientRecord.from_row(row) if row is not None else None

    async def add_patient(self, patient: PatientRecord) -> int:
        """Store a new patient. Sets id and timestamps on the record and returns the id."""
        db = self._conn()
        now = utc_now_iso()
        patient.created_at = now
        patient.updated_at = now
        async with self._write_lock:
            cursor = await db.execute(
                f"INSERT INTO patients ({', '.join(_PATIENT_COLUMNS)}, created_at, updated_at) "
                f"VALUES ({', '.join('?' * (len(_PATIENT_COLUMNS) + 2))})",
                (*_patient_values(patient), now, now),
            )
            await db.commit()
        patient.id = cursor.lastrowid
        return patient.id  # type: ignore[return-value]

    async def update_patient(self, patient: PatientRecord) -> bool:
        """Overwrite a stored patient. Returns True if a row was updated."""
        if patient.id is None:
            raise StorageError("Patient ID is required")
        db = self._conn()
        patient.updated_at = utc_now_iso()
        assignments = ", ".join(f"{col} = ?" for col in _PATIENT_COLUMNS)
        async with self._write_lock:
            cursor = await db.execute(
                f"UPDATE patients SET {assignments}, updated_at = ? WHERE id = ?",
                (*_patient_values(patient), patient.updated_at, patient.id),
            )
            await db.commit()
        return cursor.rowcount > 0

    async def delete_patient(self, patient_id: int) -> bool:
        """Delete a patient and all history rows that reference it."""
        db = self._conn()
        async with self._write_lock:
            cursor = await db.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
            history_cursor = await db.execute(
                "DELETE FROM history WHERE patient_id = ?", (patient_id,)
            )
            await db.commit()
        _LOGGER.debug(
            "Deleted patient %s and %d history rows", patient_id, history_cursor.rowcount
        )
        return cursor.rowcount > 0

    # ── History ──────────────────────────────────────────────────────────────

    async def get_history(self, limit: int | None = None) -> list[HistoryRecord]:
        """Saved calculations, newest first."""
        db = self._conn()
        if limit:
            cursor = await db.execute(
                "SELECT * FROM history ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            )
        else:
            cursor = await db.execute(
                "SELECT * FROM history ORDER BY created_at DESC, id DESC"
            )
        rows = await cursor.fetchall()
        return [HistoryRecord.from_row(row) for row in rows]

    async def get_history_by_patient(self, patient_id: int) -> list[HistoryRecord]:
        cursor = await self._conn().execute(
            "SELECT * FROM history WHERE patient_id = ? "
            "ORDER BY created_at DESC, id DESC",
            (patient_id,),
        )
        rows = await cursor.fetchall()
        return [HistoryRecord.from_row(row) for row in rows]

    async def add_history(self, record: HistoryRecord) -> int:
        """Store a calculation. Sets id and created_at on the record and returns the id."""
        db = self._conn()
        record.created_at = utc_now_iso()
        async with self._write_lock:
            cursor = await db.execute(
                "INSERT INTO history (patient_id, patient_name, regimen_id, regimen_name, "
                "cancer_type, cycle, bsa, ccr, doses, reactions, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.patient_id, record.patient_name, record.regimen_id,
                    record.regimen_name, record.cancer_type, record.cycle,
                    record.bsa, record.ccr, record.doses_json(), record.reactions_json(),
                    record.created_at,
                ),
            )
            await db.commit()
        record.id = cursor.lastrowid
        return record.id  # type: ignore[return-value]

    async def delete_history(self, record_id: int) -> bool:
        db = self._conn()
        async with self._write_lock:
            cursor = await db.execute("DELETE FROM history WHERE id = ?", (record_id,))
            await db.commit()
        return cursor.rowcount > 0

    async def clear_history(self) -> None:
        db = self._conn()
        async with self._write_lock:
            await db.execute("DELETE FROM history")
            await db.commit()
        _LOGGER.info("All calculation history cleared")

    # ── Settings ─────────────────────────────────────────────────────────────

    async def get_setting(self, key: str, default: Any = None) -> Any:
        cursor = await self._conn().execute(
            "SELECT value FROM settings WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row is None or row["value"] is None:
            return default
        return json.loads(row["value"])

    async def set_setting(self, key: str, value: Any) -> None:
        db = self._conn()
        async with self._write_lock:
            await db.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value)),
            )
            await db.commit()

    async def get_all_settings(self) -> dict[str, Any]:
        cursor = await self._conn().execute("SELECT key, value FROM settings")
        rows = await cursor.fetchall()
        return {
            row["key"]: json.loads(row["value"])
            for row in rows
            if row["value"] is not None
        }

    async def clear_settings(self) -> None:
        db = self._conn()
        async with self._write_lock:
            await db.execute("DELETE FROM settings")
            await db.commit()

    # ── Clear all data ────────────────────────────────────────────────────────

    async def clear_all_data(self) -> None:
        """Delete every patient, history row and setting."""
        db = self._conn()
        async with self._write_lock:
            await db.execute("DELETE FROM history")
            await db.execute("DELETE FROM patients")
            await db.execute("DELETE FROM settings")
            await db.commit()
        _LOGGER.info("All dose calculator data cleared")


def _patient_values(patient: PatientRecord) -> tuple:
    return (
        patient.name,
        patient.height_cm,
        patient.weight_kg,
        patient.age,
        int(Sex(patient.sex)),
        patient.creatinine,
        CreatinineUnit(patient.creatinine_unit).value,
        patient.bsa,
        patient.ccr,
        patient.last_cycle,
        patient.last_regimen,
        patient.notes,
    )
