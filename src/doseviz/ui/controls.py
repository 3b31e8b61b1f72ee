# src/doseviz/ui/controls.py
from dataclasses import dataclass, field
from typing import Optional

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QComboBox, QDoubleSpinBox, QFrame, QLabel, QLineEdit, QPushButton, QSpinBox, QVBoxLayout,
)

from doseengine.calculator import is_value_valid
from doseengine.catalog import CANCER_TYPES, get_regimen, get_regimens_by_cancer
from doseengine.session import compute_bsa, compute_ccr
from doseengine.types import BSAFormula, CreatinineUnit, PatientBiometrics, Regimen, Sex


@dataclass
class CalculateRequest:
    patient: PatientBiometrics = field(default_factory=PatientBiometrics)
    regimen: Optional[Regimen] = None
    cycle: int = 1


class PatientPanel(QFrame):
    calculateRequested = Signal(CalculateRequest)
    saveRequested = Signal()

    def __init__(self):
        super().__init__()
        self.setFrameShape(QFrame.StyledPanel)
        self.bsa_formula = BSAFormula.MOSTELLER
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("Patient"))

        self.name = QLineEdit(); self.name.setPlaceholderText("Name (optional)")
        layout.addWidget(QLabel("Name"))
        layout.addWidget(self.name)

        # 0 shows as blank and means "not entered"
        self.height = QDoubleSpinBox(); self.height.setRange(0, 250); self.height.setDecimals(1)
        self.height.setSuffix(" cm"); self.height.setSpecialValueText(" ")
        layout.addWidget(QLabel("Height (cm)"))
        layout.addWidget(self.height)

        self.weight = QDoubleSpinBox(); self.weight.setRange(0, 300); self.weight.setDecimals(1)
        self.weight.setSuffix(" kg"); self.weight.setSpecialValueText(" ")
        layout.addWidget(QLabel("Weight (kg)"))
        layout.addWidget(self.weight)

        self.age = QSpinBox(); self.age.setRange(0, 150)
        self.age.setSuffix(" y"); self.age.setSpecialValueText(" ")
        layout.addWidget(QLabel("Age (years)"))
        layout.addWidget(self.age)

        self.sex = QComboBox()
        self.sex.addItem("Male", Sex.MALE)
        self.sex.addItem("Female", Sex.FEMALE)
        layout.addWidget(QLabel("Sex"))
        layout.addWidget(self.sex)

        # --- Renal function ---
        self.creatinine = QDoubleSpinBox(); self.creatinine.setRange(0, 2000); self.creatinine.setDecimals(2)
        self.creatinine.setSpecialValueText(" ")
        layout.addWidget(QLabel("Serum creatinine"))
        layout.addWidget(self.creatinine)

        self.creatinine_unit = QComboBox()
        self.creatinine_unit.addItem("µmol/L", CreatinineUnit.UMOL)
        self.creatinine_unit.addItem("mg/dL", CreatinineUnit.MG)
        layout.addWidget(self.creatinine_unit)

        self.derived = QLabel()
        layout.addWidget(self.derived)
        self.range_warning = QLabel(); self.range_warning.setStyleSheet("color: #8a2f2f;")
        self.range_warning.setWordWrap(True)
        layout.addWidget(self.range_warning)

        # --- Regimen ---
        layout.addWidget(QLabel("Regimen"))
        self.cancer_type = QComboBox()
        for c in CANCER_TYPES:
            self.cancer_type.addItem(c.name, c.id)
        layout.addWidget(QLabel("Cancer type"))
        layout.addWidget(self.cancer_type)

        self.regimen = QComboBox()
        layout.addWidget(QLabel("Regimen"))
        layout.addWidget(self.regimen)

        self.cycle = QSpinBox(); self.cycle.setRange(1, 99); self.cycle.setValue(1)
        layout.addWidget(QLabel("Cycle"))
        layout.addWidget(self.cycle)

        go = QPushButton("Calculate"); layout.addWidget(go)
        go.clicked.connect(self._emit_request)
        save = QPushButton("Save patient"); layout.addWidget(save)
        save.clicked.connect(self.saveRequested.emit)
        layout.addStretch(1)

        self.cancer_type.currentIndexChanged.connect(self._reload_regimens)
        self._reload_regimens()
        for spin in (self.height, self.weight, self.age, self.creatinine):
            spin.valueChanged.connect(self._update_derived)
        self.sex.currentIndexChanged.connect(self._update_derived)
        self.creatinine_unit.currentIndexChanged.connect(self._update_derived)
        self._update_derived()

    def set_bsa_formula(self, formula: BSAFormula):
        self.bsa_formula = BSAFormula(formula)
        self._update_derived()

    def set_creatinine_unit(self, unit: CreatinineUnit):
        idx = self.creatinine_unit.findData(CreatinineUnit(unit))
        if idx >= 0:
            self.creatinine_unit.setCurrentIndex(idx)

    def biometrics(self) -> PatientBiometrics:
        return PatientBiometrics(
            height_cm=self.height.value() or None,
            weight_kg=self.weight.value() or None,
            age=self.age.value() or None,
            sex=self.sex.currentData(),
            creatinine=self.creatinine.value() or None,
            creatinine_unit=self.creatinine_unit.currentData(),
            name=self.name.text().strip() or None,
        )

    def load_biometrics(self, patient: PatientBiometrics, cycle: Optional[int] = None):
        self.name.setText(patient.name or "")
        self.height.setValue(patient.height_cm or 0)
        self.weight.setValue(patient.weight_kg or 0)
        self.age.setValue(int(patient.age or 0))
        self.sex.setCurrentIndex(max(0, self.sex.findData(patient.sex or Sex.MALE)))
        self.creatinine.setValue(patient.creatinine or 0)
        self.set_creatinine_unit(patient.creatinine_unit)
        if cycle:
            self.cycle.setValue(cycle)

    def select_regimen(self, regimen_id: str):
        regimen = get_regimen(regimen_id)
        if regimen is None:
            return
        self.cancer_type.setCurrentIndex(max(0, self.cancer_type.findData(regimen.cancer_type)))
        idx = self.regimen.findData(regimen.id)
        if idx >= 0:
            self.regimen.setCurrentIndex(idx)

    def _reload_regimens(self):
        self.regimen.clear()
        for r in get_regimens_by_cancer(self.cancer_type.currentData()):
            self.regimen.addItem(f"{r.name} · {r.scenario_label}", r.id)

    def _update_derived(self):
        p = self.biometrics()
        bsa = compute_bsa(p, self.bsa_formula)
        ccr = compute_ccr(p)
        self.derived.setText(f"BSA {bsa:.2f} m² | Ccr {ccr:.1f} mL/min")

        # range check only applies to values typed in µmol/L
        out_of_range = []
        for kind, value in (("height", p.height_cm), ("weight", p.weight_kg), ("age", p.age)):
            if value is not None and not is_value_valid(kind, value):
                out_of_range.append(kind)
        if p.creatinine is not None and p.creatinine_unit is CreatinineUnit.UMOL \
                and not is_value_valid("creatinine", p.creatinine):
            out_of_range.append("creatinine")
        self.range_warning.setText(
            f"Check {', '.join(out_of_range)}: outside the usual range" if out_of_range else ""
        )

    def _emit_request(self):
        regimen_id = self.regimen.currentData()
        req = CalculateRequest(
            patient=self.biometrics(),
            regimen=get_regimen(regimen_id) if regimen_id else None,
            cycle=int(self.cycle.value()),
        )
        self.calculateRequested.emit(req)
