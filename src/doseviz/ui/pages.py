# src/doseviz/ui/pages.py
from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView, QComboBox, QFormLayout, QFrame, QHBoxLayout, QLabel, QListWidget,
    QListWidgetItem, QPushButton, QTextBrowser, QVBoxLayout, QWidget,
)

from doseengine.catalog import (
    ADVERSE_REACTION_TYPES, CANCER_TYPES, HOME_CARE_GUIDE, REACTION_GRADES, RED_FLAGS,
    TREATMENT_SCENARIOS, get_regimens_grouped,
)
from doseengine.format import format_date, format_datetime
from doseengine.helpers import group_by_scenario
from doseengine.records import HistoryRecord, PatientRecord
from doseengine.settings import THEMES, AppSettings
from doseengine.types import BSAFormula, CreatinineUnit

_SCENARIO_ORDER = {k: s.order for k, s in TREATMENT_SCENARIOS.items()}


class LibraryPage(QWidget):
    """Read-only regimen library grouped by cancer type and scenario."""
    regimenChosen = Signal(str)

    def __init__(self):
        super().__init__()
        layout = QHBoxLayout(self)
        self.list = QListWidget()
        self.detail = QTextBrowser()
        layout.addWidget(self.list, 1)
        layout.addWidget(self.detail, 2)

        names = {c.id: c.name for c in CANCER_TYPES}
        for cancer_id, regimens in get_regimens_grouped().items():
            if not regimens:
                continue
            header = QListWidgetItem(names.get(cancer_id, cancer_id))
            header.setFlags(Qt.NoItemFlags)
            self.list.addItem(header)
            for rs in group_by_scenario(regimens, _SCENARIO_ORDER).values():
                for r in rs:
                    star = " ★" if r.recommended else ""
                    item = QListWidgetItem(f"   {r.name} · {r.scenario_label}{star}")
                    item.setData(Qt.UserRole, r)
                    self.list.addItem(item)

        self.list.currentItemChanged.connect(self._show_detail)
        self.list.itemDoubleClicked.connect(self._choose)

    def _show_detail(self, item, _previous=None):
        regimen = item.data(Qt.UserRole) if item else None
        if regimen is None:
            self.detail.clear()
            return
        rows = "".join(
            f"<tr><td>{d.name} ({d.abbreviation})</td><td>{d.dosage_label} {d.dosage_unit}</td>"
            f"<td>{d.administration}</td><td>{d.day}</td><td>{d.note or ''}</td></tr>"
            for d in regimen.drugs
        )
        warnings = "".join(f"<li><b>{w.title}</b>: {w.content}</li>" for w in regimen.warnings)
        contra = "".join(f"<li>{c}</li>" for c in regimen.contraindications)
        cycles = f", {regimen.recommended_cycles} cycles" if regimen.recommended_cycles else ""
        self.detail.setHtml(
            f"<h3>{regimen.name}</h3><p>{regimen.description}</p>"
            f"<p>Every {regimen.cycle_days} days{cycles} · {regimen.source} level {regimen.level}</p>"
            f"<table border='1' cellpadding='4'>{rows}</table>"
            + (f"<h4>Warnings</h4><ul>{warnings}</ul>" if warnings else "")
            + (f"<h4>Contraindications</h4><ul>{contra}</ul>" if contra else "")
        )

    def _choose(self, item):
        regimen = item.data(Qt.UserRole)
        if regimen is not None:
            self.regimenChosen.emit(regimen.id)


class ReactionsPage(QWidget):
    """CTCAE grade entry for the adverse reactions of the last cycle."""
    reactionsChanged = Signal(dict)

    def __init__(self):
        super().__init__()
        layout = QVBoxLayout(self)
        form = QFormLayout()
        self.grades: dict[str, QComboBox] = {}
        for reaction in ADVERSE_REACTION_TYPES:
            box = QComboBox()
            for g in REACTION_GRADES:
                box.addItem(f"{g.label} {g.description}".strip(), g.value)
            box.setToolTip(reaction.description)
            box.currentIndexChanged.connect(self._emit)
            self.grades[reaction.id] = box
            form.addRow(reaction.name, box)
        layout.addLayout(form)

        guide = "".join(f"<li><b>{h.title}</b>: {h.description}</li>" for h in HOME_CARE_GUIDE)
        flags = "".join(f"<li><b>{f.text}</b>: {f.description}</li>" for f in RED_FLAGS)
        info = QTextBrowser()
        info.setHtml(f"<h4>Home care</h4><ul>{guide}</ul><h4>Seek care immediately</h4><ul>{flags}</ul>")
        layout.addWidget(info)

    def values(self) -> dict[str, int]:
        return {rid: box.currentData() for rid, box in self.grades.items() if box.currentData()}

    def reset(self):
        for box in self.grades.values():
            box.blockSignals(True)
            box.setCurrentIndex(0)
            box.blockSignals(False)

    def _emit(self):
        self.reactionsChanged.emit(self.values())


class PatientsPage(QWidget):
    loadRequested = Signal(object)     # PatientRecord
    deleteRequested = Signal(int)

    def __init__(self):
        super().__init__()
        layout = QVBoxLayout(self)
        self.list = QListWidget()
        self.list.setSelectionMode(QAbstractItemView.SingleSelection)
        layout.addWidget(self.list)
        buttons = QHBoxLayout()
        load = QPushButton("Load into calculator"); buttons.addWidget(load)
        delete = QPushButton("Delete"); buttons.addWidget(delete)
        layout.addLayout(buttons)

        load.clicked.connect(self._load)
        delete.clicked.connect(self._delete)
        self.list.itemDoubleClicked.connect(lambda _item: self._load())

    def show_patients(self, patients: list[PatientRecord]):
        self.list.clear()
        for p in patients:
            item = QListWidgetItem(
                f"{p.name}  ·  {p.height_cm:g} cm, {p.weight_kg:g} kg, {p.age:g} y"
                f"  ·  BSA {p.bsa or 0:.2f}  ·  {format_date(p.updated_at)}"
            )
            item.setData(Qt.UserRole, p)
            self.list.addItem(item)

    def _selected(self):
        item = self.list.currentItem()
        return item.data(Qt.UserRole) if item else None

    def _load(self):
        patient = self._selected()
        if patient is not None:
            self.loadRequested.emit(patient)

    def _delete(self):
        patient = self._selected()
        if patient is not None and patient.id is not None:
            self.deleteRequested.emit(patient.id)


class HistoryPage(QWidget):
    deleteRequested = Signal(int)
    clearRequested = Signal()

    def __init__(self):
        super().__init__()
        layout = QHBoxLayout(self)
        left = QVBoxLayout()
        self.list = QListWidget()
        left.addWidget(self.list)
        buttons = QHBoxLayout()
        delete = QPushButton("Delete"); buttons.addWidget(delete)
        clear = QPushButton("Clear all"); buttons.addWidget(clear)
        left.addLayout(buttons)
        layout.addLayout(left, 1)
        self.detail = QTextBrowser()
        layout.addWidget(self.detail, 1)

        self.list.currentItemChanged.connect(self._show_detail)
        delete.clicked.connect(self._delete)
        clear.clicked.connect(self.clearRequested.emit)

    def show_records(self, records: list[HistoryRecord]):
        self.list.clear()
        self.detail.clear()
        for r in records:
            item = QListWidgetItem(f"{r.patient_name} · {r.regimen_name} C{r.cycle} · {format_date(r.created_at)}")
            item.setData(Qt.UserRole, r)
            self.list.addItem(item)

    def _show_detail(self, item, _previous=None):
        record = item.data(Qt.UserRole) if item else None
        if record is None:
            self.detail.clear()
            return
        doses = "".join(f"<li>{d.drug_name}: {d.calculated_dose} mg</li>" for d in record.doses)
        reactions = "".join(f"<li>{k}: grade {v}</li>" for k, v in record.reactions.items())
        self.detail.setHtml(
            f"<h3>{record.patient_name}</h3><p>{record.regimen_name}, cycle {record.cycle}<br/>"
            f"{format_datetime(record.created_at)}<br/>BSA {record.bsa:.2f} m², Ccr {record.ccr:.1f} mL/min</p>"
            f"<ul>{doses}</ul>" + (f"<h4>Adverse reactions</h4><ul>{reactions}</ul>" if reactions else "")
        )

    def _delete(self):
        item = self.list.currentItem()
        record = item.data(Qt.UserRole) if item else None
        if record is not None and record.id is not None:
            self.deleteRequested.emit(record.id)


class SettingsPage(QFrame):
    settingChanged = Signal(str, object)
    resetRequested = Signal()

    def __init__(self):
        super().__init__()
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.bsa_formula = QComboBox()
        self.bsa_formula.addItem("Mosteller", BSAFormula.MOSTELLER)
        self.bsa_formula.addItem("Xu Wensheng", BSAFormula.XU_WENSHENG)
        self.bsa_formula.addItem("DuBois", BSAFormula.DUBOIS)
        form.addRow("BSA formula", self.bsa_formula)

        self.theme = QComboBox()
        for t in THEMES:
            self.theme.addItem(t.capitalize(), t)
        form.addRow("Theme", self.theme)

        self.creatinine_unit = QComboBox()
        self.creatinine_unit.addItem("µmol/L", CreatinineUnit.UMOL)
        self.creatinine_unit.addItem("mg/dL", CreatinineUnit.MG)
        form.addRow("Default creatinine unit", self.creatinine_unit)
        layout.addLayout(form)

        reset = QPushButton("Reset to defaults")
        layout.addWidget(reset)
        layout.addWidget(QLabel("Formulas: Mosteller sqrt(H×W/3600); Cockcroft-Gault for Ccr; "
                                "Calvert AUC×(Ccr+25) for carboplatin."))
        layout.addStretch(1)

        self.bsa_formula.currentIndexChanged.connect(
            lambda _i: self.settingChanged.emit("bsa_formula", self.bsa_formula.currentData()))
        self.theme.currentIndexChanged.connect(
            lambda _i: self.settingChanged.emit("theme", self.theme.currentData()))
        self.creatinine_unit.currentIndexChanged.connect(
            lambda _i: self.settingChanged.emit("default_creatinine_unit", self.creatinine_unit.currentData()))
        reset.clicked.connect(self.resetRequested.emit)

    def show_settings(self, settings: AppSettings):
        for box, value in ((self.bsa_formula, settings.bsa_formula),
                           (self.theme, settings.theme),
                           (self.creatinine_unit, settings.default_creatinine_unit)):
            box.blockSignals(True)
            box.setCurrentIndex(max(0, box.findData(value)))
            box.blockSignals(False)
