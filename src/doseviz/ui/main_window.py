# src/doseviz/ui/main_window.py
import asyncio
import logging

from PySide6.QtWidgets import (
    QHBoxLayout, QInputDialog, QListWidget, QMainWindow, QStackedWidget, QStatusBar, QVBoxLayout, QWidget,
)

from doseengine.errors import DoseCalcError
from doseengine.settings import SettingsStore
from doseengine.session import Session
from doseengine.stores import HistoryStore, PatientStore

from .controls import CalculateRequest, PatientPanel
from .pages import HistoryPage, LibraryPage, PatientsPage, ReactionsPage, SettingsPage
from .plots import DosePlotWidget
from .results import ResultPanel

_LOGGER = logging.getLogger(__name__)

APP_TITLE = "Chemo Dose Calculator"

# (route, page title)
ROUTES = (
    ("calculator", "Calculator"),
    ("library", "Regimen library"),
    ("reactions", "Adverse reactions"),
    ("patients", "Patients"),
    ("history", "History"),
    ("settings", "Settings"),
)
DEFAULT_ROUTE = "calculator"

_DARK_STYLE = """
QWidget { background-color: #1f2329; color: #e6e6e6; }
QLineEdit, QSpinBox, QDoubleSpinBox, QComboBox, QListWidget, QTableWidget, QTextBrowser {
    background-color: #2a2f36; color: #e6e6e6;
}
"""


class MainWindow(QMainWindow):
    def __init__(self, loop: asyncio.AbstractEventLoop, session: Session, patients: PatientStore,
                 history: HistoryStore, settings: SettingsStore):
        super().__init__()
        self.resize(1200, 760)
        self._loop = loop
        self.session = session
        self.patients = patients
        self.history = history
        self.settings = settings
        settings.on_change = self._on_setting_applied

        central = QWidget(self); self.setCentralWidget(central)
        root = QHBoxLayout(central)

        self.nav = QListWidget(); self.nav.setFixedWidth(170)
        for _route, title in ROUTES:
            self.nav.addItem(title)
        root.addWidget(self.nav, 0)

        self.stack = QStackedWidget()
        root.addWidget(self.stack, 1)

        # calculator page: form | result + chart
        calc = QWidget(); calc_layout = QHBoxLayout(calc)
        self.controls = PatientPanel()
        right = QVBoxLayout()
        self.result_panel = ResultPanel()
        self.plot = DosePlotWidget()
        right.addWidget(self.result_panel, 1)
        right.addWidget(self.plot, 1)
        calc_layout.addWidget(self.controls, 0)
        calc_layout.addLayout(right, 1)

        self.library_page = LibraryPage()
        self.reactions_page = ReactionsPage()
        self.patients_page = PatientsPage()
        self.history_page = HistoryPage()
        self.settings_page = SettingsPage()
        self._pages = {
            "calculator": calc,
            "library": self.library_page,
            "reactions": self.reactions_page,
            "patients": self.patients_page,
            "history": self.history_page,
            "settings": self.settings_page,
        }
        for route, _title in ROUTES:
            self.stack.addWidget(self._pages[route])

        self.status = QStatusBar(); self.setStatusBar(self.status)

        # wire events
        self.nav.currentRowChanged.connect(lambda row: self.navigate(ROUTES[row][0]))
        self.controls.calculateRequested.connect(self.on_calculate)
        self.controls.saveRequested.connect(self.on_save_patient)
        self.result_panel.saveRequested.connect(self.on_save_history)
        self.library_page.regimenChosen.connect(self.on_regimen_chosen)
        self.reactions_page.reactionsChanged.connect(self.on_reactions_changed)
        self.patients_page.loadRequested.connect(self.on_load_patient)
        self.patients_page.deleteRequested.connect(self.on_delete_patient)
        self.history_page.deleteRequested.connect(self.on_delete_history)
        self.history_page.clearRequested.connect(self.on_clear_history)
        self.settings_page.settingChanged.connect(self.on_setting_changed)
        self.settings_page.resetRequested.connect(self.on_reset_settings)

        self.apply_settings()
        self.navigate(DEFAULT_ROUTE)

    # --- async bridge: one loop, one operation at a time ---
    def _run(self, coro):
        return self._loop.run_until_complete(coro)

    # --- routing ---
    def navigate(self, route: str):
        keys = [r for r, _t in ROUTES]
        if route not in keys:
            route = DEFAULT_ROUTE
        idx = keys.index(route)
        if self.nav.currentRow() != idx:
            self.nav.blockSignals(True)
            self.nav.setCurrentRow(idx)
            self.nav.blockSignals(False)
        self.stack.setCurrentIndex(idx)
        self.setWindowTitle(f"{ROUTES[idx][1]} - {APP_TITLE}")

        if route == "patients":
            self._run(self.patients.load_patients())
            self._report(self.patients.error)
            self.patients_page.show_patients(self.patients.patients)
        elif route == "history":
            self._run(self.history.load_history())
            self._report(self.history.error)
            self.history_page.show_records(self.history.records)

    def _report(self, error, ok_message: str = ""):
        if error:
            self.status.showMessage(error, 8000)
        elif ok_message:
            self.status.showMessage(ok_message, 5000)

    # --- settings ---
    def apply_settings(self):
        s = self.settings.settings
        self.settings_page.show_settings(s)
        self.session.set_bsa_formula(s.bsa_formula)
        self.controls.set_bsa_formula(s.bsa_formula)
        self.controls.set_creatinine_unit(s.default_creatinine_unit)
        self.apply_theme(s.theme)

    def apply_theme(self, theme: str):
        self.setStyleSheet(_DARK_STYLE if theme == "dark" else "")

    def _on_setting_applied(self, key: str, value):
        if key == "theme":
            self.apply_theme(value)

    def on_setting_changed(self, key: str, value):
        self._run(self.settings.save_setting(key, value))
        self._report(self.settings.error)
        if key == "bsa_formula":
            self.session.set_bsa_formula(value)
            self.controls.set_bsa_formula(value)
            self.result_panel.clear("BSA formula changed, press Calculate again")
            self.plot.clear()
        elif key == "default_creatinine_unit":
            self.controls.set_creatinine_unit(value)

    def on_reset_settings(self):
        self._run(self.settings.reset_settings())
        self._report(self.settings.error, "Settings reset")
        self.apply_settings()

    # --- calculator ---
    def on_calculate(self, req: CalculateRequest):
        if req.regimen is None:
            self.status.showMessage("Select a regimen first", 5000)
            return
        self.session.set_patient(req.patient)
        self.session.set_regimen(req.regimen)
        self.session.set_cycle(req.cycle)
        result = self.session.calculate()
        if result is None:
            self.result_panel.clear("Height, weight and sex are needed to calculate BSA")
            self.plot.clear()
            return
        self.result_panel.show_result(req.regimen, result, req.cycle)
        self.plot.plot_doses(result.drugs)
        _LOGGER.debug("Calculated %s cycle %d: BSA %.2f, Ccr %.1f", req.regimen.id, req.cycle, result.bsa, result.ccr)
        if any(d.uses_calvert for d in req.regimen.drugs) and not result.ccr:
            self.status.showMessage("Carboplatin needs age and serum creatinine for the Calvert formula", 8000)

    def on_regimen_chosen(self, regimen_id: str):
        self.controls.select_regimen(regimen_id)
        self.navigate("calculator")

    def on_reactions_changed(self, reactions: dict):
        try:
            self.session.set_adverse_reactions(reactions)
        except ValueError as e:
            self.status.showMessage(str(e), 8000)

    def on_save_patient(self):
        self.session.set_patient(self.controls.biometrics())
        if self.session.result is None:
            self.result_panel.clear()
            self.plot.clear()
        name = self.session.patient.name
        if not name:
            name, ok = QInputDialog.getText(self, "Save patient", "Patient name:")
            if not ok:
                return
        try:
            patient_id = self._run(self.patients.save_from_session(self.session, name.strip() or None))
        except DoseCalcError as e:
            self.status.showMessage(str(e), 8000)
            return
        if patient_id is not None:
            self.controls.name.setText(self.session.patient.name or "")
        self._report(self.patients.error, f"Patient saved (#{patient_id})")

    def on_save_history(self):
        try:
            record_id = self._run(self.history.add_record(self.session))
        except DoseCalcError as e:
            self.status.showMessage(str(e), 8000)
            return
        self._report(self.history.error, f"Saved to history (#{record_id})")

    # --- records ---
    def on_load_patient(self, patient):
        self.patients.load_to_session(self.session, patient)
        self.controls.load_biometrics(self.session.patient, self.session.cycle)
        self.reactions_page.reset()
        if patient.last_regimen:
            self.controls.select_regimen(patient.last_regimen)
        self.result_panel.clear()
        self.plot.clear()
        self.navigate("calculator")

    def on_delete_patient(self, patient_id: int):
        self._run(self.patients.delete_patient(patient_id))
        self._report(self.patients.error, "Patient deleted")
        self.patients_page.show_patients(self.patients.patients)

    def on_delete_history(self, record_id: int):
        self._run(self.history.delete_record(record_id))
        self._report(self.history.error, "Record deleted")
        self.history_page.show_records(self.history.records)

    def on_clear_history(self):
        self._run(self.history.clear_history())
        self._report(self.history.error, "History cleared")
        self.history_page.show_records(self.history.records)
