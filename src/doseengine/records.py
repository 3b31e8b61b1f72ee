# src/doseengine/records.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .types import CreatinineUnit, PatientBiometrics, Sex


def utc_now_iso() -> str:
    """ISO-8601 timestamp in UTC with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class PatientRecord:
    """
    A saved patient.

    id          : autogenerated row id (None until stored)
    bsa / ccr   : last values computed for this patient
    last_cycle  : cycle number of the last calculation
    last_regimen: regimen id of the last calculation
    """
    name: str
    height_cm: float = 0.0
    weight_kg: float = 0.0
    age: float = 0.0
    sex: Sex = Sex.MALE
    creatinine: Optional[float] = None
    creatinine_unit: CreatinineUnit = CreatinineUnit.UMOL
    bsa: Optional[float] = None
    ccr: Optional[float] = None
    last_cycle: Optional[int] = None
    last_regimen: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PatientRecord":
        return cls(
            id=row["id"],
            name=row["name"],
            height_cm=row["height_cm"],
            weight_kg=row["weight_kg"],
            age=row["age"],
            sex=Sex(row["sex"]),
            creatinine=row["creatinine"],
            creatinine_unit=CreatinineUnit(row["creatinine_unit"]),
            bsa=row["bsa"],
            ccr=row["ccr"],
            last_cycle=row["last_cycle"],
            last_regimen=row["last_regimen"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_biometrics(self) -> PatientBiometrics:
        return PatientBiometrics(
            height_cm=self.height_cm,
            weight_kg=self.weight_kg,
            age=self.age,
            sex=self.sex,
            creatinine=self.creatinine,
            creatinine_unit=self.creatinine_unit,
            name=self.name,
        )


@dataclass(frozen=True)
class DoseLine:
    drug_name: str
    calculated_dose: int
    dosage_unit: str


@dataclass
class HistoryRecord:
    """One saved calculation. patient_id is a soft reference and may be None."""
    patient_name: str
    regimen_id: str
    regimen_name: str
    cancer_type: str
    cycle: int
    bsa: float
    ccr: float
    doses: list[DoseLine] = field(default_factory=list)
    reactions: dict[str, int] = field(default_factory=dict)
    patient_id: Optional[int] = None
    id: Optional[int] = None
    created_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HistoryRecord":
        return cls(
            id=row["id"],
            patient_id=row["patient_id"],
            patient_name=row["patient_name"],
            regimen_id=row["regimen_id"],
            regimen_name=row["regimen_name"],
            cancer_type=row["cancer_type"],
            cycle=row["cycle"],
            bsa=row["bsa"],
            ccr=row["ccr"],
            doses=[DoseLine(**d) for d in json.loads(row["doses"] or "[]")],
            reactions=json.loads(row["reactions"] or "{}"),
            created_at=row["created_at"],
        )

    def doses_json(self) -> str:
        return json.dumps([
            {"drug_name": d.drug_name, "calculated_dose": d.calculated_dose, "dosage_unit": d.dosage_unit}
            for d in self.doses
        ], ensure_ascii=False)

    def reactions_json(self) -> str:
        return json.dumps(self.reactions, ensure_ascii=False, sort_keys=True)
