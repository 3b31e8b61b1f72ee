import pytest

from doseengine.catalog import (
    ADVERSE_REACTION_TYPES, CANCER_TYPES, REACTION_GRADES, REGIMENS, REGIMENS_BY_ID,
    TREATMENT_SCENARIOS, get_cancer_type, get_reaction_type, get_regimen, get_regimens_by_cancer,
    get_regimens_by_cancer_and_scenario, get_regimens_grouped,
)
from doseengine.helpers import group_by_scenario
from doseengine.types import AucDosage, BsaDosage, Drug, Regimen


def test_regimen_ids_unique_and_indexed():
    ids = [r.id for r in REGIMENS]
    assert len(ids) == len(set(ids))
    assert set(REGIMENS_BY_ID) == set(ids)


def test_every_regimen_is_well_formed():
    cancer_ids = {c.id for c in CANCER_TYPES}
    for r in REGIMENS:
        assert r.drugs, r.id
        assert r.cycle_days > 0 and r.cycle_weeks > 0
        assert r.cancer_type in cancer_ids
        assert r.scenario in TREATMENT_SCENARIOS
        for d in r.drugs:
            assert isinstance(d.dosage, (BsaDosage, AucDosage))


def test_carboplatin_is_auc_dosed():
    carbo = [d for r in REGIMENS for d in r.drugs if d.name == "Carboplatin"]
    assert carbo
    for d in carbo:
        assert d.uses_calvert
        assert d.dosage == AucDosage(5.0)
        assert d.dosage_unit == "Calvert formula"
        assert d.dosage_label == "AUC 5"


def test_lookups():
    assert get_regimen("pp_carboplatin").cancer_type == "nsclc"
    assert get_regimen("does_not_exist") is None
    assert get_cancer_type("btc").name == "Biliary tract cancer"
    assert get_cancer_type("nope") is None
    assert get_reaction_type("neutropenia").category == "hematologic"
    assert get_reaction_type("nope") is None

    sclc = get_regimens_by_cancer("sclc")
    assert {r.id for r in sclc} == {"ep_limited_sclc", "ec_limited_sclc", "ep_extensive_sclc", "ec_extensive_sclc"}
    limited = get_regimens_by_cancer_and_scenario("sclc", "limited")
    assert {r.id for r in limited} == {"ep_limited_sclc", "ec_limited_sclc"}
    assert get_regimens_by_cancer("breast") == []


def test_grouped_follows_cancer_type_order():
    grouped = get_regimens_grouped()
    assert list(grouped) == [c.id for c in CANCER_TYPES]
    assert grouped["breast"] == [] and grouped["ovarian"] == []
    assert sum(len(v) for v in grouped.values()) == len(REGIMENS)


def test_group_by_scenario_order():
    order = {k: s.order for k, s in TREATMENT_SCENARIOS.items()}
    grouped = group_by_scenario(get_regimens_by_cancer("colorectal"), order)
    assert list(grouped) == ["adjuvant", "firstline"]


def test_reaction_tables():
    assert [g.value for g in REACTION_GRADES] == [0, 1, 2, 3, 4, 5]
    assert len({r.id for r in ADVERSE_REACTION_TYPES}) == len(ADVERSE_REACTION_TYPES)


def _drug(**kw):
    base = dict(name="X", abbreviation="X", dosage=BsaDosage(100), administration="IV",
                dosage_method="Day 1", day="Day 1")
    base.update(kw)
    return Drug(**base)


def test_drug_validation():
    with pytest.raises(ValueError):
        _drug(dosage=BsaDosage(0))
    with pytest.raises(ValueError):
        _drug(dosage=AucDosage(-1))
    with pytest.raises(ValueError):
        _drug(max_dose_mg=0)
    assert _drug().dosage_label == "100"
    assert _drug().dosage_unit == "mg/m²"


def test_regimen_validation():
    kw = dict(id="r", name="R", cancer_type="colorectal", scenario="adjuvant",
              scenario_label="Adjuvant", description="", cycle_weeks=2, cycle_days=14)
    assert Regimen(drugs=(_drug(),), **kw).cycle_days == 14
    with pytest.raises(ValueError):
        Regimen(drugs=(), **kw)
    with pytest.raises(ValueError):
        Regimen(drugs=(_drug(),), **{**kw, "cycle_days": 0})
