import json
from dataclasses import replace

import pytest

from doseengine.catalog import get_regimen
from doseengine.records import PatientRecord
from doseengine.session import Session, calculate_regimen_doses, compute_result
from doseengine.types import BSAFormula, BsaDosage, Drug, PatientBiometrics, Regimen, Sex


def test_pemetrexed_carboplatin_reference(reference_patient):
    """BSA 1.82, Ccr 77.8: pemetrexed 500 mg/m² -> 910 mg, carboplatin AUC 5 -> 514 mg."""
    result = compute_result(get_regimen("pp_carboplatin"), reference_patient)
    assert result.bsa == 1.82
    assert result.ccr == 77.8
    assert result.renal.level == "mild"
    doses = {d.abbreviation: d.calculated_dose_mg for d in result.drugs}
    assert doses == {"PEM": 910, "CBP": 514}


def test_carboplatin_without_ccr_is_zero(reference_patient):
    patient = replace(reference_patient, creatinine=None)
    result = compute_result(get_regimen("pp_carboplatin"), patient)
    assert result.ccr == 0
    assert result.renal.level == "severe"
    doses = {d.abbreviation: d.calculated_dose_mg for d in result.drugs}
    assert doses["CBP"] == 0 and doses["PEM"] == 910


def test_result_is_idempotent(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    s.set_regimen(get_regimen("mfolfox6_adjuvant"))
    first = s.calculate()
    second = s.calculate()
    assert json.dumps(first.to_dict(), sort_keys=True) == json.dumps(second.to_dict(), sort_keys=True)


def test_no_result_without_regimen_or_sex(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    assert s.calculate() is None

    s.set_regimen(get_regimen("folfiri"))
    s.set_patient(replace(reference_patient, sex=None))
    assert s.calculate() is None
    assert s.bsa == 0 and s.ccr == 0


def test_changes_clear_result(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    s.set_regimen(get_regimen("folfiri"))
    assert s.calculate() is not None
    s.set_regimen(get_regimen("xelox_adjuvant"))
    assert s.result is None

    s.calculate()
    s.set_patient(replace(reference_patient, weight_kg=60))
    assert s.result is None

    s.calculate()
    s.set_bsa_formula(BSAFormula.DUBOIS)
    assert s.result is None
    assert s.calculate().bsa == 1.81


def test_cap_at_max_dose():
    drug = Drug(name="Capped", abbreviation="CP", dosage=BsaDosage(1.4), administration="IV",
                dosage_method="Day 1", day="Day 1", max_dose_mg=2)
    regimen = Regimen(id="cap", name="Cap", cancer_type="colorectal", scenario="adjuvant",
                      scenario_label="Adjuvant", description="", cycle_weeks=3, cycle_days=21,
                      drugs=(drug,))
    low, = calculate_regimen_doses(regimen, bsa=1.0, ccr=90)
    high, = calculate_regimen_doses(regimen, bsa=2.5, ccr=90)
    assert (low.calculated_dose_mg, low.capped) == (1, False)
    assert (high.calculated_dose_mg, high.capped) == (2, True)


def test_cycle_validation():
    s = Session()
    s.set_cycle(4)
    assert s.cycle == 4
    for bad in (0, -1, 1.5, "2"):
        with pytest.raises(ValueError):
            s.set_cycle(bad)
    assert s.cycle == 4


def test_adverse_reactions_validation():
    s = Session()
    s.set_adverse_reactions({"neutropenia": 3, "diarrhea": 0})
    assert s.adverse_reactions == {"neutropenia": 3, "diarrhea": 0}
    with pytest.raises(ValueError):
        s.set_adverse_reactions({"hair_loss": 1})
    with pytest.raises(ValueError):
        s.set_adverse_reactions({"neutropenia": 6})
    assert s.adverse_reactions == {"neutropenia": 3, "diarrhea": 0}


def test_patient_snapshot_and_reload(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    s.set_regimen(get_regimen("pp_carboplatin"))
    s.set_cycle(3)
    record = s.patient_for_save()
    assert record.name == "Test Patient"
    assert (record.bsa, record.ccr) == (1.82, 77.8)
    assert record.last_cycle == 3 and record.last_regimen == "pp_carboplatin"

    s.clear()
    assert not s.has_patient and s.regimen is None and s.cycle == 1
    s.load_patient(record)
    assert s.has_patient
    assert s.cycle == 3
    assert s.patient == reference_patient


def test_load_patient_without_cycle_keeps_current():
    s = Session()
    s.set_cycle(2)
    s.load_patient(PatientRecord(name="A", height_cm=160, weight_kg=55, age=40, sex=Sex.FEMALE))
    assert s.cycle == 2
    assert s.patient.sex is Sex.FEMALE
    assert isinstance(s.patient, PatientBiometrics)


def test_same_patient_keeps_result(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    s.set_regimen(get_regimen("pp_carboplatin"))
    result = s.calculate()
    # the form is re-read before saving the patient
    s.set_patient(replace(reference_patient))
    assert s.result is result


def test_load_patient_links_and_resets_reactions(reference_patient):
    s = Session()
    s.set_adverse_reactions({"neutropenia": 3})
    s.load_patient(PatientRecord(name="Erin", height_cm=160, weight_kg=55, age=40, sex=Sex.FEMALE, id=12))
    assert s.patient_id == 12
    assert s.adverse_reactions == {}

    s.set_patient(replace(s.patient, weight_kg=54))
    assert s.patient_id == 12
    s.set_patient(replace(s.patient, name="Frank"))
    assert s.patient_id is None

    s.load_patient(PatientRecord(name="Erin", height_cm=160, weight_kg=55, age=40, sex=Sex.FEMALE, id=12))
    s.clear()
    assert s.patient_id is None


def test_link_patient_keeps_result(reference_patient):
    s = Session()
    s.set_patient(reference_patient)
    s.set_regimen(get_regimen("folfiri"))
    result = s.calculate()
    s.link_patient(PatientRecord(name="Grace", id=3))
    assert s.patient.name == "Grace"
    assert s.patient_id == 3
    assert s.result is result
