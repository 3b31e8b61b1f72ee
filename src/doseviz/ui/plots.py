# src/doseviz/ui/plots.py
from PySide6.QtWidgets import QWidget, QVBoxLayout
import pyqtgraph as pg

from doseengine.types import DrugDose


class DosePlotWidget(QWidget):
    """Bar chart of the calculated dose per drug."""

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QVBoxLayout(self)

        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setLabel("left", "Dose", units="mg")
        self.plot_widget.showGrid(x=False, y=True, alpha=0.3)
        layout.addWidget(self.plot_widget)

        self.bars = None

    def plot_doses(self, doses: tuple[DrugDose, ...]):
        self.clear()
        if not doses:
            return
        xs = list(range(len(doses)))
        heights = [d.calculated_dose_mg for d in doses]
        self.bars = pg.BarGraphItem(x=xs, height=heights, width=0.6, brush="#4a90d9")
        self.plot_widget.addItem(self.bars)
        # several rows can share a name (5-FU bolus + infusion), so label by position
        ticks = [(i, f"{d.abbreviation}\n{d.day}") for i, d in enumerate(doses)]
        self.plot_widget.getAxis("bottom").setTicks([ticks])

    def clear(self):
        self.plot_widget.clear()
        self.plot_widget.getAxis("bottom").setTicks(None)
        self.bars = None
