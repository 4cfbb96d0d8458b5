from __future__ import annotations
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QComboBox, QTextEdit, QDialogButtonBox,
    QHBoxLayout, QPushButton, QTableWidget, QTableWidgetItem, QHeaderView,
    QDoubleSpinBox, QLabel, QLineEdit, QMessageBox
)
from PySide6.QtCore import Qt

from opsdesk.core.services.document_editor import STATUSES, DocumentEditor
from opsdesk.core.services.totals import format_money


class DocumentEditorDialog(QDialog):
    """Formulaire devis/facture au-dessus d'un DocumentEditor."""

    COLS = ["Description", "Quantity", "Unit price", "Total"]

    def __init__(self, editor: DocumentEditor, parent=None, currency: str = "USD"):
        super().__init__(parent)
        self.editor = editor
        self.currency = currency
        kind = editor.kind.capitalize()
        self.setWindowTitle(f"Edit {kind}" if editor.is_edit else f"New {kind}")
        self.setModal(True)

        h = editor.header
        self.ed_title = QLineEdit(h.get("title") or "")
        self.ed_description = QTextEdit(h.get("description") or "")
        self.cb_customer = QComboBox()
        self.cb_customer.addItem("Select Customer", None)
        for c in editor.customers:
            self.cb_customer.addItem(c.name, c.id)
        self.cb_customer.setCurrentIndex(max(0, self.cb_customer.findData(h.get("customer_id"))))
        self.ed_customer_name = QLineEdit(h.get("customer_name") or "")
        self.ed_customer_email = QLineEdit(h.get("customer_email") or "")
        self.ed_customer_phone = QLineEdit(h.get("customer_phone") or "")
        self.ed_customer_address = QLineEdit(h.get("customer_address") or "")
        self.sp_tax = QDoubleSpinBox(); self.sp_tax.setRange(0.0, 100.0); self.sp_tax.setDecimals(2)
        self.sp_tax.setSuffix(" %"); self.sp_tax.setValue(float(h.get("tax_rate") or 0))
        date_field = "valid_until" if editor.kind == "estimate" else "due_date"
        self._date_field = date_field
        self.ed_date = QLineEdit(h.get(date_field) or ""); self.ed_date.setPlaceholderText("YYYY-MM-DD")
        self.cb_status = QComboBox(); self.cb_status.addItems(list(STATUSES[editor.kind]))
        self.cb_status.setCurrentText(h.get("status") or "draft")
        self.ed_notes = QTextEdit(h.get("notes") or "")

        self.lab_totals = QLabel()

        self.tbl = QTableWidget(0, len(self.COLS))
        self.tbl.setHorizontalHeaderLabels(self.COLS)
        self.tbl.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl.setSelectionBehavior(self.tbl.SelectionBehavior.SelectRows)
        self.tbl.itemChanged.connect(self._cell_changed)

        btn_add = QPushButton("Add Item")
        btn_del = QPushButton("Remove Item")
        btn_add.clicked.connect(self._add_line)
        btn_del.clicked.connect(self._del_line)

        top = QFormLayout()
        top.addRow("Title", self.ed_title)
        top.addRow("Description", self.ed_description)
        top.addRow("Customer", self.cb_customer)
        top.addRow("Customer name", self.ed_customer_name)
        top.addRow("Customer email", self.ed_customer_email)
        top.addRow("Customer phone", self.ed_customer_phone)
        top.addRow("Customer address", self.ed_customer_address)
        top.addRow("Tax rate", self.sp_tax)
        top.addRow("Valid until" if editor.kind == "estimate" else "Due date", self.ed_date)
        top.addRow("Status", self.cb_status)
        top.addRow("Notes", self.ed_notes)

        bar = QHBoxLayout()
        bar.addWidget(btn_add); bar.addWidget(btn_del); bar.addStretch(1); bar.addWidget(self.lab_totals)

        self.btns = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        self.btns.accepted.connect(self._submit)
        self.btns.rejected.connect(self.reject)

        self.cb_customer.currentIndexChanged.connect(self._customer_changed)
        self.sp_tax.valueChanged.connect(self._tax_changed)

        lay = QVBoxLayout(self)
        lay.addLayout(top)
        lay.addLayout(bar)
        lay.addWidget(self.tbl)
        lay.addWidget(self.btns)

        self._refresh_table()

    # -------- UI helpers --------
    def _refresh_table(self):
        self.tbl.blockSignals(True)
        self.tbl.setRowCount(0)
        for it in self.editor.items:
            r = self.tbl.rowCount()
            self.tbl.insertRow(r)
            self.tbl.setItem(r, 0, QTableWidgetItem(it.description))
            self.tbl.setItem(r, 1, QTableWidgetItem(f"{it.quantity:g}"))
            self.tbl.setItem(r, 2, QTableWidgetItem(f"{it.unit_price:.2f}"))
            total = QTableWidgetItem(format_money(it.total, self.currency))
            total.setFlags(total.flags() & ~Qt.ItemFlag.ItemIsEditable)
            self.tbl.setItem(r, 3, total)
        self.tbl.blockSignals(False)
        self._update_totals()

    def _update_totals(self):
        t = self.editor.totals()
        self.lab_totals.setText(
            f"Subtotal: {format_money(t.subtotal, self.currency)}   "
            f"Tax: {format_money(t.tax_amount, self.currency)}   "
            f"Total: {format_money(t.total, self.currency)}"
        )

    def _cell_changed(self, item: QTableWidgetItem):
        field = {0: "description", 1: "quantity", 2: "unit_price"}.get(item.column())
        if field is None:
            return
        self.editor.items.update_item(item.row(), field, item.text())
        self._refresh_table()

    def _customer_changed(self, _index: int):
        self.editor.select_customer(self.cb_customer.currentData())
        self.ed_customer_name.setText(self.editor.header.get("customer_name") or "")

    def _tax_changed(self, value: float):
        self.editor.set_field("tax_rate", float(value))
        self._update_totals()

    def _add_line(self):
        self.editor.items.add_item()
        self._refresh_table()

    def _del_line(self):
        row = self.tbl.currentRow()
        if row < 0:
            return
        self.editor.items.remove_item(row)
        self._refresh_table()

    # -------- Result --------
    def _submit(self):
        e = self.editor
        e.set_field("title", self.ed_title.text().strip())
        e.set_field("description", self.ed_description.toPlainText().strip())
        e.set_field("customer_name", self.ed_customer_name.text().strip())
        e.set_field("customer_email", self.ed_customer_email.text().strip())
        e.set_field("customer_phone", self.ed_customer_phone.text().strip())
        e.set_field("customer_address", self.ed_customer_address.text().strip())
        e.set_field(self._date_field, self.ed_date.text().strip())
        e.set_field("status", self.cb_status.currentText())
        e.set_field("notes", self.ed_notes.toPlainText().strip())

        self.btns.setEnabled(False)
        saved = e.submit()
        self.btns.setEnabled(True)
        if saved is None:
            # le formulaire reste ouvert avec la saisie intacte
            QMessageBox.warning(self, "Error", e.error or "Save failed")
            return
        self.accept()
