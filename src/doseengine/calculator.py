# src/doseengine/calculator.py
from __future__ import annotations

import math
from typing import Literal, Optional, Tuple

import numpy as np

from .types import BSAFormula, CreatinineUnit, RenalAssessment, Sex

# Clamping bounds. No guideline reference backs these values; callers can
# override per call with ``bounds=``.
BSA_BOUNDS: Tuple[float, float] = (0.5, 3.0)        # m²
CCR_BOUNDS: Tuple[float, float] = (0.0, 200.0)      # mL/min
CREATININE_UMOL_PER_MGDL = 88.4
FEMALE_CCR_FACTOR = 0.85
CALVERT_GFR_OFFSET = 25.0

ValueKind = Literal["height", "weight", "age", "creatinine"]

VALUE_RANGES: dict[str, Tuple[float, float]] = {
    "height": (30.0, 250.0),       # cm
    "weight": (2.0, 300.0),        # kg
    "age": (1.0, 150.0),           # years
    "creatinine": (10.0, 2000.0),  # µmol/L
}


def compute_body_surface_area(height_cm: Optional[float], weight_kg: Optional[float],
                              formula: BSAFormula = BSAFormula.MOSTELLER,
                              sex: Optional[Sex] = Sex.MALE,
                              *, bounds: Tuple[float, float] = BSA_BOUNDS) -> float:
    """
    Body surface area in m², rounded to 2 decimals.

      - Mosteller   : sqrt(height * weight / 3600)
      - Xu Wensheng : male   0.0057*h + 0.0121*w + 0.0882
                      female 0.0073*h + 0.0127*w - 0.2106
      - DuBois      : 0.007184 * w^0.425 * h^0.725

    Returns 0 when height or weight is missing or not positive. Any other
    result is clamped into ``bounds``.
    """
    if not (_is_positive(height_cm) and _is_positive(weight_kg)):
        return 0.0
    h, w = float(height_cm), float(weight_kg)

    formula = _coerce_formula(formula)
    if formula is BSAFormula.XU_WENSHENG:
        if sex == Sex.FEMALE:
            bsa = 0.0073 * h + 0.0127 * w - 0.2106
        else:
            bsa = 0.0057 * h + 0.0121 * w + 0.0882
    elif formula is BSAFormula.DUBOIS:
        bsa = 0.007184 * math.pow(w, 0.425) * math.pow(h, 0.725)
    else:
        bsa = math.sqrt(h * w / 3600.0)

    lo, hi = bounds
    return _round_half_up(float(np.clip(bsa, lo, hi)), 2)


def compute_creatinine_clearance(age: Optional[float], weight_kg: Optional[float],
                                 serum_creatinine: Optional[float],
                                 unit: CreatinineUnit = CreatinineUnit.UMOL,
                                 sex: Optional[Sex] = Sex.MALE,
                                 *, bounds: Tuple[float, float] = CCR_BOUNDS) -> float:
    """
    Cockcroft-Gault creatinine clearance in mL/min, rounded to 1 decimal.

      Ccr = (140 - age) * weight / (72 * Cr[mg/dL]),  * 0.85 for women

    Creatinine given in µmol/L is converted with 88.4 µmol/L = 1 mg/dL.
    Missing or non-positive inputs give 0.
    """
    if not (_is_positive(age) and _is_positive(weight_kg) and _is_positive(serum_creatinine)):
        return 0.0

    creatinine_mg = float(serum_creatinine)
    if _coerce_unit(unit) is CreatinineUnit.UMOL:
        creatinine_mg = creatinine_mg / CREATININE_UMOL_PER_MGDL

    ccr = (140.0 - float(age)) * float(weight_kg) / (72.0 * creatinine_mg)
    if sex == Sex.FEMALE:
        ccr *= FEMALE_CCR_FACTOR

    lo, hi = bounds
    return _round_half_up(float(np.clip(ccr, lo, hi)), 1)


def compute_dose_by_bsa(bsa: Optional[float], rate_per_m2: Optional[float]) -> int:
    """Dose in mg for a mg/m² rate, rounded to a whole mg. 0 if either input is missing or not positive."""
    if not (_is_positive(bsa) and _is_positive(rate_per_m2)):
        return 0
    return int(_round_half_up(float(bsa) * float(rate_per_m2), 0))


def compute_carboplatin_dose(target_auc: Optional[float], ccr: Optional[float]) -> int:
    """Calvert formula: dose (mg) = AUC * (Ccr + 25). 0 if either input is missing or not positive."""
    if not (_is_positive(target_auc) and _is_positive(ccr)):
        return 0
    return int(_round_half_up(float(target_auc) * (float(ccr) + CALVERT_GFR_OFFSET), 0))


_RENAL_TIERS = (
    (90.0, RenalAssessment("normal", "Normal renal function", "success",
                           "No dose adjustment needed", False)),
    (60.0, RenalAssessment("mild", "Mild renal impairment", "warning",
                           "Some drugs need dose reduction", True)),
    (30.0, RenalAssessment("moderate", "Moderate renal impairment", "warning",
                           "Dose adjustment required", True)),
)
_RENAL_SEVERE = RenalAssessment("severe", "Severe renal impairment", "danger",
                                "Avoid nephrotoxic drugs", True)


def classify_renal_function(ccr: Optional[float]) -> RenalAssessment:
    """Four-tier step function on Ccr: >=90 normal, >=60 mild, >=30 moderate, else severe."""
    try:
        value = float(ccr)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    for threshold, assessment in _RENAL_TIERS:
        if value >= threshold:
            return assessment
    return _RENAL_SEVERE


def is_value_valid(kind: ValueKind, value: Optional[float]) -> bool:
    """Check a typed-in value against its plausible range. Unknown kinds pass."""
    limits = VALUE_RANGES.get(kind)
    if limits is None:
        return True
    if value is None or not math.isfinite(value):
        return False
    lo, hi = limits
    return lo <= value <= hi


# --------------------------
# Internals
# --------------------------
def _is_positive(x: Optional[float]) -> bool:
    if x is None:
        return False
    try:
        x = float(x)
    except (TypeError, ValueError):
        return False
    return math.isfinite(x) and x > 0

def _coerce_formula(formula) -> BSAFormula:
    try:
        return BSAFormula(formula)
    except ValueError:
        return BSAFormula.MOSTELLER

def _round_half_up(x: float, decimals: int) -> float:
    # 0.125 -> 0.13, not 0.12 as with round()
    scale = 10.0 ** decimals
    return float(np.floor(x * scale + 0.5)) / scale

def _coerce_unit(unit) -> CreatinineUnit:
    try:
        return CreatinineUnit(unit)
    except ValueError:
        return CreatinineUnit.UMOL
