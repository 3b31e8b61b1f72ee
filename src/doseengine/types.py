# src/doseengine/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Literal, Optional, Union

# Doses are always in mg, BSA in m², clearance in mL/min.
RenalLevel = Literal["normal", "mild", "moderate", "severe"]
Severity = Literal["success", "warning", "danger", "info"]


class BSAFormula(str, Enum):
    MOSTELLER = "mosteller"
    XU_WENSHENG = "xu_wensheng"
    DUBOIS = "dubois"


class Sex(IntEnum):
    MALE = 1
    FEMALE = 2


class CreatinineUnit(str, Enum):
    UMOL = "umol"  # µmol/L
    MG = "mg"      # mg/dL


@dataclass(frozen=True)
class BsaDosage:
    """Fixed rate scaled by body surface area (mg/m²)."""
    rate_mg_per_m2: float

    @property
    def unit(self) -> str:
        return "mg/m²"

    @property
    def label(self) -> str:
        return f"{self.rate_mg_per_m2:g}"


@dataclass(frozen=True)
class AucDosage:
    """Target exposure for the Calvert formula (carboplatin)."""
    target_auc: float

    @property
    def unit(self) -> str:
        return "Calvert formula"

    @property
    def label(self) -> str:
        return f"AUC {self.target_auc:g}"


Dosage = Union[BsaDosage, AucDosage]


@dataclass(frozen=True)
class Drug:
    """
    One dosing rule inside a regimen.

    dosage        : BsaDosage for mg/m² drugs, AucDosage for carboplatin
    administration: route and infusion time, free text
    dosage_method : how the single dose is split across the cycle, free text
    day           : which day(s) of the cycle the drug is given
    max_dose_mg   : optional hard cap applied after calculation
    """
    name: str
    abbreviation: str
    dosage: Dosage
    administration: str
    dosage_method: str
    day: str
    max_dose_mg: Optional[float] = None
    note: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.dosage, (BsaDosage, AucDosage)):
            raise ValueError(f"{self.name}: dosage must be BsaDosage or AucDosage (got {self.dosage!r}).")
        if isinstance(self.dosage, BsaDosage):
            _validate_positive(f"{self.name} rate_mg_per_m2", self.dosage.rate_mg_per_m2)
        else:
            _validate_positive(f"{self.name} target_auc", self.dosage.target_auc)
        if self.max_dose_mg is not None:
            _validate_positive(f"{self.name} max_dose_mg", self.max_dose_mg)

    @property
    def uses_calvert(self) -> bool:
        return isinstance(self.dosage, AucDosage)

    @property
    def dosage_unit(self) -> str:
        return self.dosage.unit

    @property
    def dosage_label(self) -> str:
        return self.dosage.label


@dataclass(frozen=True)
class RegimenWarning:
    kind: Severity
    title: str
    content: str


@dataclass(frozen=True)
class Regimen:
    """
    A named combination of drugs given on a fixed cycle.

    cycle_weeks / cycle_days : length of one cycle (e.g. 3 weeks / 21 days)
    level                    : evidence level of the guideline recommendation
    """
    id: str
    name: str
    cancer_type: str
    scenario: str
    scenario_label: str
    description: str
    cycle_weeks: int
    cycle_days: int
    drugs: tuple[Drug, ...]
    source: str = "CSCO guideline"
    level: str = "1A"
    recommended_cycles: Optional[int] = None
    warnings: tuple[RegimenWarning, ...] = ()
    contraindications: tuple[str, ...] = ()
    recommended: bool = False

    def __post_init__(self):
        if not self.drugs:
            raise ValueError(f"Regimen {self.id!r} must list at least one drug.")
        _validate_positive_int("cycle_days", self.cycle_days)
        _validate_positive_int("cycle_weeks", self.cycle_weeks)
        if self.recommended_cycles is not None:
            _validate_positive_int("recommended_cycles", self.recommended_cycles)


@dataclass(frozen=True)
class CancerType:
    id: str
    name: str


@dataclass(frozen=True)
class TreatmentScenario:
    id: str
    name: str
    order: int


@dataclass(frozen=True)
class AdverseReactionType:
    id: str
    name: str
    category: Literal["hematologic", "non_hematologic", "special"]
    description: str


@dataclass(frozen=True)
class ReactionGrade:
    value: int
    label: str
    severity: Severity
    description: str = ""


@dataclass(frozen=True)
class HomeCareItem:
    title: str
    description: str


@dataclass(frozen=True)
class RedFlag:
    text: str
    description: str


@dataclass(frozen=True)
class PatientBiometrics:
    """
    Values typed in for the current patient. Anything may still be None
    while the form is being filled in.
    """
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    age: Optional[float] = None
    sex: Optional[Sex] = None
    creatinine: Optional[float] = None
    creatinine_unit: CreatinineUnit = CreatinineUnit.UMOL
    name: Optional[str] = None


@dataclass(frozen=True)
class RenalAssessment:
    level: RenalLevel
    text: str
    severity: Severity
    adjustment: str
    recommend_adjustment: bool


@dataclass(frozen=True)
class DrugDose:
    name: str
    abbreviation: str
    dosage_label: str
    dosage_unit: str
    calculated_dose_mg: int
    administration: str
    day: str
    capped: bool = False


@dataclass(frozen=True)
class ComputedResult:
    bsa: float
    ccr: float
    renal: RenalAssessment
    drugs: tuple[DrugDose, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "bsa": self.bsa,
            "ccr": self.ccr,
            "renal": {
                "level": self.renal.level,
                "text": self.renal.text,
                "severity": self.renal.severity,
                "adjustment": self.renal.adjustment,
                "recommend_adjustment": self.renal.recommend_adjustment,
            },
            "drugs": [
                {
                    "name": d.name,
                    "abbreviation": d.abbreviation,
                    "dosage": d.dosage_label,
                    "dosage_unit": d.dosage_unit,
                    "calculated_dose_mg": d.calculated_dose_mg,
                    "administration": d.administration,
                    "day": d.day,
                    "capped": d.capped,
                }
                for d in self.drugs
            ],
        }


# --------------------------
# Small input validators
# --------------------------
def _validate_positive(name: str, x: float) -> None:
    if not (x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")

def _validate_positive_int(name: str, x: int) -> None:
    if not (isinstance(x, int) and x > 0):
        raise ValueError(f"{name} must be a positive integer (got {x}).")
