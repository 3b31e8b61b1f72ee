# src/doseengine/session.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping, Optional

from .calculator import (
    classify_renal_function, compute_body_surface_area, compute_carboplatin_dose,
    compute_creatinine_clearance, compute_dose_by_bsa,
)
from .catalog import REACTION_GRADES, get_reaction_type
from .records import PatientRecord
from .types import (
    AucDosage, BSAFormula, ComputedResult, CreatinineUnit, DrugDose, PatientBiometrics,
    Regimen, RenalAssessment, Sex,
)

_LOGGER = logging.getLogger(__name__)

_MAX_GRADE = max(g.value for g in REACTION_GRADES)


def calculate_regimen_doses(regimen: Regimen, bsa: float, ccr: float) -> tuple[DrugDose, ...]:
    """
    Dose every drug of a regimen.
    AUC-dosed drugs go through the Calvert formula, the rest are scaled by BSA.
    A drug's max_dose_mg caps the result.
    """
    doses: list[DrugDose] = []
    for drug in regimen.drugs:
        if isinstance(drug.dosage, AucDosage):
            mg = compute_carboplatin_dose(drug.dosage.target_auc, ccr or 0.0)
        else:
            mg = compute_dose_by_bsa(bsa, drug.dosage.rate_mg_per_m2)
        capped = drug.max_dose_mg is not None and mg > drug.max_dose_mg
        if capped:
            mg = int(drug.max_dose_mg)
        doses.append(DrugDose(
            name=drug.name,
            abbreviation=drug.abbreviation,
            dosage_label=drug.dosage_label,
            dosage_unit=drug.dosage_unit,
            calculated_dose_mg=mg,
            administration=drug.administration,
            day=drug.day,
            capped=capped,
        ))
    return tuple(doses)


def compute_bsa(patient: PatientBiometrics, formula: BSAFormula = BSAFormula.MOSTELLER) -> float:
    if patient.sex is None:
        return 0.0
    return compute_body_surface_area(patient.height_cm, patient.weight_kg, formula, patient.sex)


def compute_ccr(patient: PatientBiometrics) -> float:
    if patient.sex is None:
        return 0.0
    return compute_creatinine_clearance(
        patient.age, patient.weight_kg, patient.creatinine,
        patient.creatinine_unit or CreatinineUnit.UMOL, patient.sex,
    )


def compute_result(regimen: Regimen, patient: PatientBiometrics,
                   formula: BSAFormula = BSAFormula.MOSTELLER) -> Optional[ComputedResult]:
    """
    Full calculation for one regimen and one patient.
    Returns None when the biometrics do not give a usable BSA.
    """
    bsa = compute_bsa(patient, formula)
    if bsa == 0:
        return None
    ccr = compute_ccr(patient)
    return ComputedResult(
        bsa=bsa,
        ccr=ccr,
        renal=classify_renal_function(ccr),
        drugs=calculate_regimen_doses(regimen, bsa, ccr),
    )


class Session:
    """
    The calculation in progress: current patient, regimen, cycle, adverse
    reaction grades and the last computed result. Changing the patient or the
    regimen drops the last result.

    patient_id links the session to a saved patient, so history records saved
    from it are removed when that patient is deleted.
    """

    def __init__(self, bsa_formula: BSAFormula = BSAFormula.MOSTELLER):
        self.patient = PatientBiometrics()
        self.patient_id: Optional[int] = None
        self.regimen: Optional[Regimen] = None
        self.cancer_type = ""
        self.cycle = 1
        self.adverse_reactions: dict[str, int] = {}
        self.result: Optional[ComputedResult] = None
        self.bsa_formula = BSAFormula(bsa_formula)

    # --- derived values ---
    @property
    def has_patient(self) -> bool:
        p = self.patient
        return bool(p.height_cm and p.weight_kg and p.age and p.sex is not None)

    @property
    def bsa(self) -> float:
        return compute_bsa(self.patient, self.bsa_formula)

    @property
    def ccr(self) -> float:
        return compute_ccr(self.patient)

    @property
    def renal(self) -> RenalAssessment:
        return classify_renal_function(self.ccr)

    # --- actions ---
    def set_patient(self, patient: PatientBiometrics) -> None:
        """Replace the biometrics. Unchanged values keep the last result."""
        if patient == self.patient:
            return
        if patient.name != self.patient.name:
            self.patient_id = None
        self.patient = patient
        self.result = None

    def set_regimen(self, regimen: Regimen) -> None:
        _LOGGER.debug("Regimen selected: %s", regimen.id)
        self.regimen = regimen
        self.cancer_type = regimen.cancer_type
        self.result = None

    def set_cycle(self, cycle: int) -> None:
        if not (isinstance(cycle, int) and cycle >= 1):
            raise ValueError(f"cycle must be a positive integer (got {cycle}).")
        self.cycle = cycle

    def set_bsa_formula(self, formula: BSAFormula) -> None:
        self.bsa_formula = BSAFormula(formula)
        self.result = None

    def set_adverse_reactions(self, reactions: Mapping[str, int]) -> None:
        for reaction_id, grade in reactions.items():
            if get_reaction_type(reaction_id) is None:
                raise ValueError(f"Unknown adverse reaction {reaction_id!r}.")
            if not (isinstance(grade, int) and 0 <= grade <= _MAX_GRADE):
                raise ValueError(f"{reaction_id} grade must be 0-{_MAX_GRADE} (got {grade}).")
        self.adverse_reactions = dict(reactions)

    def calculate(self) -> Optional[ComputedResult]:
        """Recompute doses for the current regimen. None if no regimen or no usable BSA."""
        if self.regimen is None:
            return None
        self.result = compute_result(self.regimen, self.patient, self.bsa_formula)
        return self.result

    def clear(self) -> None:
        self.patient = PatientBiometrics()
        self.patient_id = None
        self.regimen = None
        self.cancer_type = ""
        self.cycle = 1
        self.adverse_reactions = {}
        self.result = None

    def patient_for_save(self, name: Optional[str] = None) -> PatientRecord:
        """Snapshot of the current patient with its derived BSA/Ccr, ready to store."""
        p = self.patient
        return PatientRecord(
            name=name or p.name or "",
            height_cm=p.height_cm or 0.0,
            weight_kg=p.weight_kg or 0.0,
            age=p.age or 0.0,
            sex=p.sex if p.sex is not None else Sex.MALE,
            creatinine=p.creatinine,
            creatinine_unit=p.creatinine_unit or CreatinineUnit.UMOL,
            bsa=self.bsa,
            ccr=self.ccr,
            last_cycle=self.cycle,
            last_regimen=self.regimen.id if self.regimen else None,
        )

    def load_patient(self, record: PatientRecord) -> None:
        """Put a saved patient back into the session."""
        self.set_patient(record.to_biometrics())
        self.patient_id = record.id
        self.adverse_reactions = {}
        if record.last_cycle:
            self.cycle = record.last_cycle

    def link_patient(self, record: PatientRecord) -> None:
        """Attach the session to a just-saved patient without dropping the result."""
        self.patient = replace(self.patient, name=record.name)
        self.patient_id = record.id
