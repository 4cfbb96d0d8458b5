from __future__ import annotations
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QLineEdit, QTextEdit, QDialogButtonBox, QMessageBox
)
from PySide6.QtCore import Qt
from typing import Any, Callable, Dict, Optional

from opsdesk.core.errors import OpsDeskError, ValidationFailed
from opsdesk.core.models.customer import Customer
from opsdesk.core.services.customer_service import customer_payload

_FIELDS = (
    ("name", "Name (required)"),
    ("industry", "Industry"),
    ("website", "Website"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("address", "Address"),
    ("city", "City"),
    ("state", "State"),
    ("postal_code", "Postal code"),
    ("country", "Country"),
)


class CustomerForm(QDialog):
    """Fiche client ; reste ouverte tant que la saisie est refusée."""

    def __init__(self, parent=None, customer: Optional[Customer] = None,
                 save: Optional[Callable[[Dict[str, Any]], Customer]] = None):
        super().__init__(parent)
        self.setWindowTitle("Customer")
        self.setModal(True)
        self.save = save
        self.saved: Optional[Customer] = None

        self.edits: Dict[str, QLineEdit] = {name: QLineEdit() for name, _ in _FIELDS}
        self.ed_description = QTextEdit()

        form = QFormLayout()
        for name, label in _FIELDS:
            form.addRow(label, self.edits[name])
        form.addRow("Description", self.ed_description)

        self.btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.btns.accepted.connect(self._submit)
        self.btns.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addLayout(form)
        lay.addWidget(self.btns)

        if customer:
            for name, _ in _FIELDS:
                self.edits[name].setText(str(getattr(customer, name, None) or ""))
            self.ed_description.setPlainText(customer.description or "")

    def get_payload(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {k: e.text() for k, e in self.edits.items()}
        values["description"] = self.ed_description.toPlainText()
        return customer_payload(values)

    def _submit(self):
        try:
            payload = self.get_payload()
        except ValidationFailed as e:
            QMessageBox.warning(self, "Validation", e.message)
            self.edits["name"].setFocus(Qt.FocusReason.ActiveWindowFocusReason)
            return
        if self.save is not None:
            self.btns.setEnabled(False)
            try:
                self.saved = self.save(payload)
            except OpsDeskError as e:
                # saisie conservée
                QMessageBox.warning(self, "Error", e.message)
                return
            finally:
                self.btns.setEnabled(True)
        self.accept()
