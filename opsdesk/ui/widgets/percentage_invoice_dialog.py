from __future__ import annotations
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QComboBox, QLineEdit, QDialogButtonBox, QLabel
)

from opsdesk.core.services.percentage_invoice import PercentageInvoiceGenerator
from opsdesk.core.services.totals import format_money


class PercentageInvoiceDialog(QDialog):
    """Facture partielle : devis accepté + pourcentage."""

    def __init__(self, generator: PercentageInvoiceGenerator, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Create Invoice from Estimate")
        self.setModal(True)
        self.gen = generator

        self.cb_estimate = QComboBox()
        self.ed_percentage = QLineEdit(); self.ed_percentage.setPlaceholderText("1 - 100")
        self.ed_title = QLineEdit()
        self.ed_due = QLineEdit(); self.ed_due.setPlaceholderText("YYYY-MM-DD")
        self.lab_progress = QLabel()
        self.lab_amount = QLabel()
        self.lab_error = QLabel(); self.lab_error.setStyleSheet("color: #b00020;")

        form = QFormLayout()
        form.addRow("Estimate", self.cb_estimate)
        form.addRow("", self.lab_progress)
        form.addRow("Percentage", self.ed_percentage)
        form.addRow("Invoice amount", self.lab_amount)
        form.addRow("Title (optional)", self.ed_title)
        form.addRow("Due date", self.ed_due)

        self.btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.btns.button(QDialogButtonBox.Ok).setText("Create Invoice")
        self.btns.accepted.connect(self._submit)
        self.btns.rejected.connect(self._cancel)

        lay = QVBoxLayout(self)
        lay.addLayout(form)
        lay.addWidget(self.lab_error)
        lay.addWidget(self.btns)

        self.cb_estimate.addItem("Select an approved estimate", None)
        if self.gen.load_estimates():
            for e in self.gen.approved_estimates:
                self.cb_estimate.addItem(f"{e.title} ({format_money(e.total_amount, generator.currency)})", e.id)
        self.lab_error.setText(self.gen.error or "")

        self.cb_estimate.currentIndexChanged.connect(self._estimate_changed)
        self.ed_percentage.textChanged.connect(self._inputs_changed)
        self.ed_title.textChanged.connect(self._inputs_changed)
        self.ed_due.textChanged.connect(self._inputs_changed)
        self._refresh()

    def _estimate_changed(self, _index: int):
        est_id = self.cb_estimate.currentData()
        match = next((e for e in self.gen.approved_estimates if e.id == est_id), None)
        if match is None:
            self.gen.cancel()
        else:
            self.gen.select_estimate(match)
            self._inputs_changed()
        self._refresh()

    def _inputs_changed(self, *_):
        if self.gen.estimate is None:
            return
        self.gen.enter(self.ed_percentage.text(), self.ed_title.text(), self.ed_due.text())
        self._refresh()

    def _refresh(self):
        progress = self.gen.progress()
        cur = self.gen.currency
        if progress is None:
            self.lab_progress.setText("")
        else:
            self.lab_progress.setText(
                f"Total {format_money(progress.total_amount, cur)} | "
                f"invoiced {format_money(progress.total_invoiced, cur)} "
                f"({progress.invoiced_percentage:.0f}%) | paid {format_money(progress.total_paid, cur)}"
            )
        amount = self.gen.preview_amount()
        self.lab_amount.setText(format_money(amount, cur) if amount is not None else "")
        self.btns.button(QDialogButtonBox.Ok).setEnabled(
            self.gen.estimate is not None and bool(self.ed_percentage.text().strip())
        )

    def _submit(self):
        self.btns.setEnabled(False)
        invoice = self.gen.submit()
        self.btns.setEnabled(True)
        if invoice is None:
            self.lab_error.setText(self.gen.error or "")
            self._refresh()
            return
        self.accept()

    def _cancel(self):
        self.gen.cancel()
        self.reject()
