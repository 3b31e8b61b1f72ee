# src/doseengine/catalog.py
"""
Chemotherapy regimen reference data, based on the CSCO (Chinese Society of
Clinical Oncology) guidelines. Read-only; changing a regimen is a data change.
"""
from __future__ import annotations

from typing import Optional

from .helpers import group_by_cancer_type
from .types import (
    AdverseReactionType, AucDosage, BsaDosage, CancerType, Drug, HomeCareItem,
    ReactionGrade, RedFlag, Regimen, RegimenWarning, TreatmentScenario,
)

ADVERSE_REACTION_TYPES: tuple[AdverseReactionType, ...] = (
    AdverseReactionType("neutropenia", "Neutropenia", "hematologic", "Low white cell count"),
    AdverseReactionType("thrombocytopenia", "Thrombocytopenia", "hematologic", "Low platelet count"),
    AdverseReactionType("anemia", "Anemia", "hematologic", "Low hemoglobin"),
    AdverseReactionType("nausea_vomiting", "Nausea/vomiting", "non_hematologic",
                        "Common gastrointestinal reaction"),
    AdverseReactionType("neurotoxicity", "Neurotoxicity", "non_hematologic", "Peripheral sensory disturbance"),
    AdverseReactionType("diarrhea", "Diarrhea", "non_hematologic", "Increased stool frequency"),
    AdverseReactionType("mucositis", "Oral mucositis", "non_hematologic", "Mouth ulcers / pain"),
    AdverseReactionType("allergic", "Allergic reaction", "special", "Rash, dyspnea, etc."),
)

# NCI CTCAE 5.0
REACTION_GRADES: tuple[ReactionGrade, ...] = (
    ReactionGrade(0, "None", "success"),
    ReactionGrade(1, "Grade 1", "success", "Mild, asymptomatic"),
    ReactionGrade(2, "Grade 2", "warning", "Moderate, intervention indicated"),
    ReactionGrade(3, "Grade 3", "warning", "Severe, medical intervention"),
    ReactionGrade(4, "Grade 4", "danger", "Life-threatening"),
    ReactionGrade(5, "Grade 5", "danger", "Death"),
)

CANCER_TYPES: tuple[CancerType, ...] = (
    CancerType("colorectal", "Colorectal cancer"),
    CancerType("nsclc", "Non-small cell lung cancer"),
    CancerType("sclc", "Small cell lung cancer"),
    CancerType("gastric", "Gastric cancer"),
    CancerType("btc", "Biliary tract cancer"),
    CancerType("breast", "Breast cancer"),
    CancerType("ovarian", "Ovarian cancer"),
)

TREATMENT_SCENARIOS: dict[str, TreatmentScenario] = {
    "adjuvant": TreatmentScenario("adjuvant", "Adjuvant chemotherapy", 1),
    "neoadjuvant": TreatmentScenario("neoadjuvant", "Neoadjuvant chemotherapy", 2),
    "firstline": TreatmentScenario("firstline", "Advanced first line", 3),
    "limited": TreatmentScenario("limited", "Limited stage", 1),
    "extensive": TreatmentScenario("extensive", "Extensive stage", 2),
}


# --------------------------
# Drug builders
# --------------------------
def _bsa(name: str, abbreviation: str, rate: float, administration: str, dosage_method: str,
         day: str, *, note: Optional[str] = None, max_dose_mg: Optional[float] = None) -> Drug:
    return Drug(name=name, abbreviation=abbreviation, dosage=BsaDosage(rate),
                administration=administration, dosage_method=dosage_method, day=day,
                max_dose_mg=max_dose_mg, note=note)

def _carboplatin(administration: str, auc: float = 5.0) -> Drug:
    return Drug(name="Carboplatin", abbreviation="CBP", dosage=AucDosage(auc),
                administration=administration, dosage_method="AUC 5-6, day 1", day="Day 1")


_D1 = "Single dose, day 1"
_D1_3 = "Single dose, days 1-3"
_D1_8 = "Single dose, days 1 and 8"
_PO_BID_14 = "Single dose x 2/day x 14 days"

OXALIPLATIN_85 = _bsa("Oxaliplatin", "OXA", 85, "IV infusion over 2 h", _D1, "Day 1")
OXALIPLATIN_130 = _bsa("Oxaliplatin", "OXA", 130, "IV infusion over 2 h", _D1, "Day 1")
LEUCOVORIN_400 = _bsa("Calcium folinate", "LV", 400, "IV infusion over 2 h", _D1, "Day 1")
FLUOROURACIL_BOLUS = _bsa("Fluorouracil", "5-FU", 400, "IV push", "Bolus dose, day 1", "Day 1",
                          note="IV push")
FLUOROURACIL_CIV = _bsa("Fluorouracil", "5-FU", 2400, "Continuous IV infusion over 46-48 h",
                        "Continuous infusion 46-48 h", "Days 1-2", note="1200 mg/m²/day x 2 days")
CAPECITABINE_1000 = _bsa("Capecitabine", "CAP", 1000, "Oral, twice daily (morning and evening)",
                         _PO_BID_14, "Days 1-14")
CISPLATIN_75 = _bsa("Cisplatin", "DDP", 75, "IV infusion", _D1, "Day 1")
ETOPOSIDE_100 = _bsa("Etoposide", "VP-16", 100, "IV infusion", _D1_3, "Days 1-3")
GEMCITABINE_1000 = _bsa("Gemcitabine", "GEM", 1000, "IV infusion over 30 min", _D1_8, "Days 1 and 8")
S1_40 = _bsa("Tegafur/gimeracil/oteracil", "S-1", 40, "Oral, twice daily (morning and evening)",
             _PO_BID_14, "Days 1-14")

_OXA_NEURO = RegimenWarning("warning", "Oxaliplatin neurotoxicity",
                            "Avoid cold drinks and cold water, keep warm")
_CISPLATIN_HYDRATION = RegimenWarning("warning", "Hydration", "Cisplatin requires adequate hydration")
_CONCURRENT_RT = RegimenWarning("info", "Concurrent radiotherapy",
                                "Concurrent thoracic radiotherapy is advised for limited stage")
_NEURO_COLD = RegimenWarning("warning", "Neurotoxicity", "Avoid cold stimuli")


REGIMENS: tuple[Regimen, ...] = (
    # ---- Colorectal, adjuvant ----
    Regimen(
        id="mfolfox6_adjuvant", name="mFOLFOX6", cancer_type="colorectal",
        scenario="adjuvant", scenario_label="Adjuvant chemotherapy",
        description="Oxaliplatin + calcium folinate + fluorouracil",
        cycle_weeks=2, cycle_days=14, recommended_cycles=12, level="1A",
        drugs=(OXALIPLATIN_85, LEUCOVORIN_400, FLUOROURACIL_BOLUS, FLUOROURACIL_CIV),
        warnings=(_OXA_NEURO,
                  RegimenWarning("info", "Sun protection", "Fluorouracil may cause photosensitivity")),
        contraindications=("Allergy to oxaliplatin or other platinum compounds",
                           "Severe bone marrow suppression",
                           "Severe renal impairment"),
        recommended=True,
    ),
    Regimen(
        id="xelox_adjuvant", name="XELOX", cancer_type="colorectal",
        scenario="adjuvant", scenario_label="Adjuvant chemotherapy",
        description="Oxaliplatin + capecitabine",
        cycle_weeks=3, cycle_days=21, recommended_cycles=8, level="1A",
        drugs=(OXALIPLATIN_130, CAPECITABINE_1000),
        warnings=(_OXA_NEURO,
                  RegimenWarning("info", "Capecitabine", "Take within 30 minutes after a meal")),
        contraindications=("Severe renal impairment", "Allergy to fluoropyrimidines"),
        recommended=True,
    ),
    Regimen(
        id="folfoxiri_adjuvant", name="FOLFOXIRI", cancer_type="colorectal",
        scenario="adjuvant", scenario_label="Adjuvant chemotherapy",
        description="Irinotecan + oxaliplatin + calcium folinate + fluorouracil",
        cycle_weeks=2, cycle_days=14, level="2B",
        drugs=(
            _bsa("Irinotecan", "IRI", 165, "IV infusion", _D1, "Day 1"),
            _bsa("Oxaliplatin", "OXA", 85, "IV infusion", _D1, "Day 1"),
            _bsa("Calcium folinate", "LV", 400, "IV infusion", _D1, "Day 1"),
            _bsa("Fluorouracil", "5-FU", 2400, "Continuous IV infusion over 48 h",
                 "Continuous infusion 48 h", "Days 1-2", note="May be raised to 3200 mg/m²"),
        ),
        warnings=(RegimenWarning("danger", "Intensive regimen", "High toxicity, monitor blood counts closely"),
                  RegimenWarning("warning", "Oxaliplatin neurotoxicity", "Avoid cold drinks and cold water"),
                  RegimenWarning("warning", "Irinotecan",
                                 "Watch for delayed diarrhea and cholinergic syndrome")),
        contraindications=("Severe bone marrow suppression",
                           "Severe hepatic or renal impairment",
                           "Use irinotecan with caution in UGT1A1*28 carriers"),
    ),
    # ---- Colorectal, first line ----
    Regimen(
        id="mfolfox6_firstline", name="mFOLFOX6", cancer_type="colorectal",
        scenario="firstline", scenario_label="Advanced first line",
        description="Oxaliplatin + calcium folinate + fluorouracil",
        cycle_weeks=2, cycle_days=14, level="1A",
        drugs=(OXALIPLATIN_85, LEUCOVORIN_400, FLUOROURACIL_BOLUS,
               _bsa("Fluorouracil", "5-FU", 2400, "Continuous IV infusion over 46-48 h",
                    "Continuous infusion 46-48 h", "Days 1-2")),
        warnings=(_OXA_NEURO,),
        recommended=True,
    ),
    Regimen(
        id="xelox_firstline", name="XELOX (CAPEOX)", cancer_type="colorectal",
        scenario="firstline", scenario_label="Advanced first line",
        description="Oxaliplatin + capecitabine",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(_bsa("Oxaliplatin", "OXA", 130, "IV infusion over >2 h", _D1, "Day 1"),
               CAPECITABINE_1000),
        warnings=(_OXA_NEURO,),
        recommended=True,
    ),
    Regimen(
        id="folfiri", name="FOLFIRI", cancer_type="colorectal",
        scenario="firstline", scenario_label="Advanced first line",
        description="Irinotecan + calcium folinate + fluorouracil",
        cycle_weeks=2, cycle_days=14, level="1A",
        drugs=(_bsa("Irinotecan", "IRI", 180, "IV infusion over 30-90 min", _D1, "Day 1"),
               LEUCOVORIN_400, FLUOROURACIL_BOLUS, FLUOROURACIL_CIV),
        warnings=(RegimenWarning("warning", "Delayed diarrhea",
                                 "Irinotecan can cause severe diarrhea, treat promptly"),),
        contraindications=("Chronic enteritis or bowel obstruction", "Allergy to irinotecan"),
        recommended=True,
    ),
    # ---- NSCLC ----
    Regimen(
        id="pp_carboplatin", name="PP (carboplatin)", cancer_type="nsclc",
        scenario="firstline", scenario_label="Advanced first line",
        description="Pemetrexed + carboplatin",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(_bsa("Pemetrexed", "PEM", 500, "IV infusion over >10 min", _D1, "Day 1"),
               _carboplatin("IV infusion over 30-60 min")),
        warnings=(RegimenWarning("info", "Premedication",
                                 "Corticosteroid and folic acid premedication required"),
                  RegimenWarning("info", "Carboplatin",
                                 "Calvert formula: dose = AUC x (Ccr + 25)")),
        contraindications=("Allergy to pemetrexed or carboplatin",
                           "Severe renal impairment (Ccr < 45 mL/min)"),
        recommended=True,
    ),
    # ---- SCLC, limited ----
    Regimen(
        id="ep_limited_sclc", name="EP", cancer_type="sclc",
        scenario="limited", scenario_label="Limited stage",
        description="Cisplatin + etoposide",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(CISPLATIN_75, ETOPOSIDE_100),
        warnings=(_CISPLATIN_HYDRATION, _CONCURRENT_RT),
        recommended=True,
    ),
    Regimen(
        id="ec_limited_sclc", name="EC", cancer_type="sclc",
        scenario="limited", scenario_label="Limited stage",
        description="Carboplatin + etoposide",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(_carboplatin("IV infusion"), ETOPOSIDE_100),
        warnings=(_CONCURRENT_RT,),
    ),
    # ---- SCLC, extensive ----
    Regimen(
        id="ep_extensive_sclc", name="EP", cancer_type="sclc",
        scenario="extensive", scenario_label="Extensive stage",
        description="Cisplatin + etoposide",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(CISPLATIN_75, ETOPOSIDE_100),
        warnings=(_CISPLATIN_HYDRATION,),
        recommended=True,
    ),
    Regimen(
        id="ec_extensive_sclc", name="EC", cancer_type="sclc",
        scenario="extensive", scenario_label="Extensive stage",
        description="Carboplatin + etoposide",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(_carboplatin("IV infusion"), ETOPOSIDE_100),
        recommended=True,
    ),
    # ---- Gastric, adjuvant ----
    Regimen(
        id="xelox_adjuvant_gastric", name="XELOX", cancer_type="gastric",
        scenario="adjuvant", scenario_label="Adjuvant chemotherapy",
        description="Oxaliplatin + capecitabine",
        cycle_weeks=3, cycle_days=21, recommended_cycles=8, level="1A",
        drugs=(OXALIPLATIN_130, CAPECITABINE_1000),
        warnings=(_NEURO_COLD,),
        contraindications=("Severe renal impairment", "Allergy to fluoropyrimidines"),
        recommended=True,
    ),
    Regimen(
        id="sox_adjuvant_gastric", name="SOX", cancer_type="gastric",
        scenario="adjuvant", scenario_label="Adjuvant chemotherapy",
        description="Oxaliplatin + S-1",
        cycle_weeks=3, cycle_days=21, recommended_cycles=8, level="1A",
        drugs=(OXALIPLATIN_130, S1_40),
        warnings=(_NEURO_COLD,),
        contraindications=("Severe renal impairment",),
        recommended=True,
    ),
    # ---- Biliary tract ----
    Regimen(
        id="gp_btc", name="GP", cancer_type="btc",
        scenario="firstline", scenario_label="Advanced first line",
        description="Gemcitabine + cisplatin",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(GEMCITABINE_1000, _bsa("Cisplatin", "DDP", 25, "IV infusion", _D1_8, "Days 1 and 8")),
        warnings=(_CISPLATIN_HYDRATION,),
        recommended=True,
    ),
    Regimen(
        id="gs_btc", name="GS", cancer_type="btc",
        scenario="firstline", scenario_label="Advanced first line",
        description="Gemcitabine + S-1",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(GEMCITABINE_1000,
               _bsa("Tegafur/gimeracil/oteracil", "S-1", 40, "Oral, twice daily", _PO_BID_14, "Days 1-14",
                    note="By BSA: <1.25 m² 60 mg/d, 1.25-1.5 m² 80 mg/d, >1.5 m² 100 mg/d")),
        recommended=True,
    ),
    Regimen(
        id="gemox_btc", name="GEMOX", cancer_type="btc",
        scenario="firstline", scenario_label="Advanced first line",
        description="Gemcitabine + oxaliplatin",
        cycle_weeks=3, cycle_days=21, level="1A",
        drugs=(GEMCITABINE_1000, _bsa("Oxaliplatin", "OXA", 100, "IV infusion over 2 h", _D1, "Day 1")),
        recommended=True,
    ),
)

REGIMENS_BY_ID: dict[str, Regimen] = {r.id: r for r in REGIMENS}

HOME_CARE_GUIDE: tuple[HomeCareItem, ...] = (
    HomeCareItem("Drink plenty", "2000-2500 mL of water a day to help clear the drugs"),
    HomeCareItem("Light diet", "Small frequent meals of easily digested food"),
    HomeCareItem("Rest", "Sleep well and keep moderately active"),
    HomeCareItem("Check temperature", "Take your temperature daily, seek care for fever"),
    HomeCareItem("Skin care", "Keep skin clean and moisturised"),
    HomeCareItem("Mouth care", "Rinse with salt water to prevent mucositis"),
)

# Symptoms that need immediate medical attention
RED_FLAGS: tuple[RedFlag, ...] = (
    RedFlag("Fever above 38 °C", "May indicate infection"),
    RedFlag("Severe diarrhea", "More than 6 times a day or bloody stool"),
    RedFlag("Severe vomiting", "Unable to eat or drink"),
    RedFlag("Bleeding", "Gum bleeding, bruising"),
    RedFlag("Shortness of breath", "Chest tightness, breathlessness"),
    RedFlag("Altered consciousness", "Confusion, drowsiness"),
)


def get_regimen(regimen_id: str) -> Optional[Regimen]:
    return REGIMENS_BY_ID.get(regimen_id)


def get_regimens_by_cancer(cancer_type: str) -> list[Regimen]:
    return [r for r in REGIMENS if r.cancer_type == cancer_type]


def get_regimens_by_cancer_and_scenario(cancer_type: str, scenario: str) -> list[Regimen]:
    return [r for r in REGIMENS if r.cancer_type == cancer_type and r.scenario == scenario]


def get_regimens_grouped() -> dict[str, list[Regimen]]:
    """All regimens keyed by cancer type id, in CANCER_TYPES order (empty lists included)."""
    return group_by_cancer_type(REGIMENS, [c.id for c in CANCER_TYPES])


def get_cancer_type(cancer_type_id: str) -> Optional[CancerType]:
    return next((c for c in CANCER_TYPES if c.id == cancer_type_id), None)


def get_reaction_type(reaction_id: str) -> Optional[AdverseReactionType]:
    return next((r for r in ADVERSE_REACTION_TYPES if r.id == reaction_id), None)
