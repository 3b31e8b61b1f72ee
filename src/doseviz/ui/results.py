# src/doseviz/ui/results.py
from PySide6.QtWidgets import (
    QAbstractItemView, QFrame, QLabel, QPushButton, QTableWidget, QTableWidgetItem, QVBoxLayout,
)
from PySide6.QtCore import Signal

from doseengine.types import ComputedResult, Regimen

_SEVERITY_COLORS = {"success": "#2e7d32", "warning": "#b26a00", "danger": "#8a2f2f", "info": "#1f5fa8"}
_COLUMNS = ("Drug", "Dosage", "Unit", "Dose (mg)", "Administration", "Day")


class ResultPanel(QFrame):
    saveRequested = Signal()

    def __init__(self):
        super().__init__()
        self.setFrameShape(QFrame.StyledPanel)
        layout = QVBoxLayout(self)

        self.summary = QLabel("Enter patient data and press Calculate")
        layout.addWidget(self.summary)
        self.renal = QLabel(); self.renal.setWordWrap(True)
        layout.addWidget(self.renal)

        self.table = QTableWidget(0, len(_COLUMNS))
        self.table.setHorizontalHeaderLabels(_COLUMNS)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.horizontalHeader().setStretchLastSection(True)
        layout.addWidget(self.table)

        self.warnings = QLabel(); self.warnings.setWordWrap(True)
        layout.addWidget(self.warnings)

        self.save = QPushButton("Save to history")
        self.save.setEnabled(False)
        self.save.clicked.connect(self.saveRequested.emit)
        layout.addWidget(self.save)

    def show_result(self, regimen: Regimen, result: ComputedResult, cycle: int):
        self.summary.setText(
            f"{regimen.name} ({regimen.scenario_label}), cycle {cycle}, every {regimen.cycle_days} days"
            f"  |  BSA {result.bsa:.2f} m²  |  Ccr {result.ccr:.1f} mL/min"
        )
        color = _SEVERITY_COLORS.get(result.renal.severity, "#333")
        self.renal.setText(
            f"<span style='color:{color}; font-weight:700'>{result.renal.text}</span>: {result.renal.adjustment}"
        )

        self.table.setRowCount(len(result.drugs))
        for row, d in enumerate(result.drugs):
            dose = f"{d.calculated_dose_mg} (capped)" if d.capped else str(d.calculated_dose_mg)
            for col, text in enumerate((f"{d.name} ({d.abbreviation})", d.dosage_label,
                                        d.dosage_unit, dose, d.administration, d.day)):
                self.table.setItem(row, col, QTableWidgetItem(text))
        self.table.resizeColumnsToContents()

        lines = [f"<b>{w.title}</b>: {w.content}" for w in regimen.warnings]
        lines += [f"Contraindication: {c}" for c in regimen.contraindications]
        self.warnings.setText("<br/>".join(lines))
        self.save.setEnabled(True)

    def clear(self, message: str = "Enter patient data and press Calculate"):
        self.summary.setText(message)
        self.renal.setText("")
        self.table.setRowCount(0)
        self.warnings.setText("")
        self.save.setEnabled(False)
