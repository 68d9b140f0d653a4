from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QCheckBox, QFormLayout, QGroupBox, QLabel, QSlider, QVBoxLayout, QWidget
)

from explodeview.config import AMOUNT_SLIDER_STEPS, DEFAULT_AMOUNT
from explodeview.explode.capability import ExplodeCapability


class ControlPanel(QWidget):
    """Explode toggle, amount slider and a small stats read-out."""
    explode_toggled = Signal(bool)
    amount_changed = Signal(float)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        layout = QVBoxLayout(self)

        box = QGroupBox("Explode", self)
        form = QFormLayout(box)

        self.chk_explode = QCheckBox("Explode", box)
        self.chk_explode.setEnabled(False)
        self.chk_explode.toggled.connect(self._on_toggled)
        form.addRow(self.chk_explode)

        self.sld_amount = QSlider(Qt.Orientation.Horizontal, box)
        self.sld_amount.setRange(0, AMOUNT_SLIDER_STEPS)
        self.sld_amount.setValue(round(DEFAULT_AMOUNT * AMOUNT_SLIDER_STEPS))
        self.sld_amount.setEnabled(False)
        self.sld_amount.valueChanged.connect(self._on_slider)
        form.addRow("Amount", self.sld_amount)

        self.lbl_capability = QLabel("No model loaded.", box)
        self.lbl_capability.setWordWrap(True)
        form.addRow(self.lbl_capability)

        layout.addWidget(box)

        self.lbl_stats = QLabel("", self)
        self.lbl_stats.setStyleSheet("color: #9aa4b2;")
        layout.addWidget(self.lbl_stats)
        layout.addStretch(1)

    @property
    def amount(self) -> float:
        return self.sld_amount.value() / AMOUNT_SLIDER_STEPS

    def set_capability(self, capability: ExplodeCapability) -> None:
        """Enable the toggle only when exploding can separate something."""
        if not capability.can_explode and self.chk_explode.isChecked():
            self.chk_explode.setChecked(False)
        self.chk_explode.setEnabled(capability.can_explode)
        self.lbl_capability.setText(capability.message)

    def set_stats(self, text: str) -> None:
        self.lbl_stats.setText(text)

    def _on_toggled(self, checked: bool) -> None:
        self.sld_amount.setEnabled(checked)
        self.explode_toggled.emit(checked)

    def _on_slider(self, _value: int) -> None:
        self.amount_changed.emit(self.amount)
