import math

import numpy as np
import pytest

from doseengine.calculator import (
    BSA_BOUNDS, classify_renal_function, compute_body_surface_area, compute_carboplatin_dose,
    compute_creatinine_clearance, compute_dose_by_bsa, is_value_valid,
)
from doseengine.types import BSAFormula, CreatinineUnit, Sex


def test_mosteller_reference_value():
    """sqrt(170 * 70 / 3600) = 1.818... -> 1.82 m²"""
    assert compute_body_surface_area(170, 70, BSAFormula.MOSTELLER) == 1.82


def test_xu_wensheng_is_sex_specific():
    # male:   0.0057*170 + 0.0121*70 + 0.0882 = 1.9042
    # female: 0.0073*170 + 0.0127*70 - 0.2106 = 1.9194
    assert compute_body_surface_area(170, 70, BSAFormula.XU_WENSHENG, Sex.MALE) == 1.90
    assert compute_body_surface_area(170, 70, BSAFormula.XU_WENSHENG, Sex.FEMALE) == 1.92


def test_dubois_reference_value():
    expected = 0.007184 * 70 ** 0.425 * 170 ** 0.725
    assert compute_body_surface_area(170, 70, BSAFormula.DUBOIS) == pytest.approx(expected, abs=0.005)


def test_unknown_formula_falls_back_to_mosteller():
    assert compute_body_surface_area(170, 70, "nonsense") == 1.82


def test_bsa_clamped_and_two_decimals():
    """Any positive height/weight gives a value inside [0.5, 3.0] with at most 2 decimals."""
    lo, hi = BSA_BOUNDS
    for formula in BSAFormula:
        for sex in Sex:
            for h in (1, 30, 100, 155.5, 170, 210, 250, 400):
                for w in (0.5, 2, 45.3, 70, 120, 300, 600):
                    bsa = compute_body_surface_area(h, w, formula, sex)
                    assert lo <= bsa <= hi
                    assert np.isclose(bsa, round(bsa, 2))

    assert compute_body_surface_area(50, 3) == 0.5
    assert compute_body_surface_area(250, 300) == 3.0


def test_bsa_custom_bounds():
    assert compute_body_surface_area(250, 300, bounds=(0.5, 5.0)) == pytest.approx(4.56, abs=0.01)


@pytest.mark.parametrize("height, weight", [
    (0, 70), (170, 0), (-170, 70), (170, -1), (None, 70), (170, None), (math.nan, 70), (170, math.inf),
])
def test_bsa_invalid_inputs_are_zero(height, weight):
    assert compute_body_surface_area(height, weight) == 0


def test_cockcroft_gault_reference_value():
    """(140 - 60) * 70 / (72 * 1.0) = 77.77... -> 77.8 mL/min"""
    ccr = compute_creatinine_clearance(60, 70, 88.4, CreatinineUnit.UMOL, Sex.MALE)
    assert ccr == 77.8
    assert classify_renal_function(ccr).level == "mild"


def test_umol_and_mg_inputs_agree():
    for creat_mg in (0.6, 1.0, 1.4, 2.7):
        via_umol = compute_creatinine_clearance(55, 80, creat_mg * 88.4, CreatinineUnit.UMOL)
        direct = compute_creatinine_clearance(55, 80, creat_mg, CreatinineUnit.MG)
        assert via_umol == pytest.approx(direct, abs=0.1)


def test_female_is_085_of_male():
    for age, weight, creat in ((60, 70, 1.0), (35, 55, 0.8), (80, 62, 1.6)):
        male = compute_creatinine_clearance(age, weight, creat, CreatinineUnit.MG, Sex.MALE)
        female = compute_creatinine_clearance(age, weight, creat, CreatinineUnit.MG, Sex.FEMALE)
        # both sides are rounded to 1 decimal
        assert female == pytest.approx(0.85 * male, abs=0.1)


def test_ccr_clamped():
    assert compute_creatinine_clearance(20, 150, 0.3, CreatinineUnit.MG) == 200.0
    assert compute_creatinine_clearance(150, 70, 1.0, CreatinineUnit.MG) == 0.0


@pytest.mark.parametrize("age, weight, creat", [
    (0, 70, 88.4), (60, 0, 88.4), (60, 70, 0), (-1, 70, 88.4), (None, 70, 88.4), (60, 70, None),
])
def test_ccr_invalid_inputs_are_zero(age, weight, creat):
    assert compute_creatinine_clearance(age, weight, creat) == 0


def test_dose_by_bsa():
    assert compute_dose_by_bsa(1.82, 85) == 155       # 154.7
    assert compute_dose_by_bsa(1.82, 2400) == 4368
    # half-up, not banker's rounding: 112.5 -> 113
    assert compute_dose_by_bsa(1.5, 75) == 113
    assert compute_dose_by_bsa(0, 85) == 0
    assert compute_dose_by_bsa(1.82, 0) == 0
    assert compute_dose_by_bsa(None, 85) == 0


def test_carboplatin_calvert():
    """5 * (77.8 + 25) = 514 mg"""
    assert compute_carboplatin_dose(5, 77.8) == 514
    assert compute_carboplatin_dose(6, 100) == 750
    assert compute_carboplatin_dose(5, 0) == 0
    assert compute_carboplatin_dose(0, 77.8) == 0
    assert compute_carboplatin_dose(None, 77.8) == 0


@pytest.mark.parametrize("ccr, level, recommend", [
    (200, "normal", False), (90, "normal", False),
    (89.9, "mild", True), (60, "mild", True),
    (59.9, "moderate", True), (30, "moderate", True),
    (29.9, "severe", True), (0, "severe", True), (None, "severe", True),
])
def test_renal_tiers(ccr, level, recommend):
    renal = classify_renal_function(ccr)
    assert renal.level == level
    assert renal.recommend_adjustment is recommend
    assert renal.adjustment


def test_value_ranges():
    assert is_value_valid("height", 170)
    assert not is_value_valid("height", 20)
    assert is_value_valid("weight", 2)
    assert not is_value_valid("weight", 301)
    assert not is_value_valid("age", 0)
    assert is_value_valid("creatinine", 88.4)
    assert not is_value_valid("creatinine", None)
    assert is_value_valid("unknown", -5)


@pytest.mark.parametrize("ccr, level", [("77.8", "mild"), ("n/a", "severe"), (math.inf, "severe"), (math.nan, "severe")])
def test_renal_classification_is_total(ccr, level):
    assert classify_renal_function(ccr).level == level
