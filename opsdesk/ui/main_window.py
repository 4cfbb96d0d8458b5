from __future__ import annotations
from typing import Any, Callable, List, Optional, Sequence, Tuple
from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QTabWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QMessageBox, QTableWidget, QTableWidgetItem, QHeaderView, QDialog, QLineEdit, QComboBox
)

from opsdesk.core.config import Settings
from opsdesk.core.errors import OpsDeskError
from opsdesk.core.models.customer import CustomerRef
from opsdesk.core.models.estimate import ESTIMATE_STATUSES
from opsdesk.core.models.invoice import INVOICE_STATUSES
from opsdesk.core.models.rfi import RFI_STATUSES
from opsdesk.core.models.todo import TodoList
from opsdesk.core.models.user import Session
from opsdesk.core.services.catalog_service import CatalogService
from opsdesk.core.services.customer_service import CustomerService
from opsdesk.core.services.document_editor import DocumentEditor
from opsdesk.core.services.estimate_service import EstimateService
from opsdesk.core.services.invoice_service import InvoiceService
from opsdesk.core.services.listing import (
    ListQuery, ListView, Predicate, cost_range, field_equals, paginate_locally, substring
)
from opsdesk.core.services.payment_service import PaymentService
from opsdesk.core.services.percentage_invoice import PercentageInvoiceGenerator
from opsdesk.core.services.rfi_service import RfiService
from opsdesk.core.services.todo_service import TodoService, flatten_items
from opsdesk.core.services.totals import format_money
from opsdesk.core.services.workflow_service import WorkflowService
from opsdesk.core.storage.api_repo import ApiClient
from opsdesk.ui.widgets.customer_form import CustomerForm
from opsdesk.ui.widgets.document_editor_dialog import DocumentEditorDialog
from opsdesk.ui.widgets.percentage_invoice_dialog import PercentageInvoiceDialog

Column = Tuple[str, Callable[[Any], str]]


class ListTab(QWidget):
    """Recherche + statut (serveur), filtres de la page, tableau, pagination bornée, état vide."""

    def __init__(self, view: ListView, columns: Sequence[Column], statuses: Sequence[str] = (),
                 empty_text: str = "No records found", parent=None, all_label: str = "All statuses"):
        super().__init__(parent)
        self.view = view
        self.columns = list(columns)

        self.ed_search = QLineEdit(); self.ed_search.setPlaceholderText("Search...")
        self.cb_status = QComboBox()
        self.cb_status.addItem(all_label, "")
        for s in statuses:
            self.cb_status.addItem(s.capitalize(), s)
        self.cb_status.setVisible(bool(statuses))

        self.actions = QHBoxLayout()
        bar = QHBoxLayout()
        bar.addWidget(self.ed_search, 1); bar.addWidget(self.cb_status); bar.addLayout(self.actions)
        # filtres client : ne réduisent que la page affichée
        self.filters = QHBoxLayout()

        self.lab_error = QLabel(); self.lab_error.setStyleSheet("color: #b00020;")
        self.lab_empty = QLabel(empty_text)

        self.tbl = QTableWidget(0, len(self.columns))
        self.tbl.setHorizontalHeaderLabels([c[0] for c in self.columns])
        self.tbl.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl.setSelectionBehavior(self.tbl.SelectionBehavior.SelectRows)
        self.tbl.setEditTriggers(self.tbl.EditTrigger.NoEditTriggers)

        self.btn_prev = QPushButton("Previous")
        self.btn_next = QPushButton("Next")
        self.lab_page = QLabel()
        pager = QHBoxLayout()
        pager.addStretch(1); pager.addWidget(self.btn_prev); pager.addWidget(self.lab_page); pager.addWidget(self.btn_next)

        root = QVBoxLayout(self)
        root.addLayout(bar)
        root.addLayout(self.filters)
        root.addWidget(self.lab_error)
        root.addWidget(self.tbl, 1)
        root.addWidget(self.lab_empty)
        root.addLayout(pager)

        self.ed_search.returnPressed.connect(lambda: self._after(self.view.set_search(self.ed_search.text())))
        self.cb_status.currentIndexChanged.connect(
            lambda _i: self._after(self.view.set_status(self.cb_status.currentData()))
        )
        self.btn_prev.clicked.connect(lambda: self._after(self.view.prev_page()))
        self.btn_next.clicked.connect(lambda: self._after(self.view.next_page()))

    def add_action(self, label: str, slot: Callable[[], None]) -> QPushButton:
        btn = QPushButton(label)
        btn.clicked.connect(slot)
        self.actions.addWidget(btn)
        return btn

    # -------- Filtres client --------
    def add_text_filter(self, placeholder: str, name: str, make: Callable[[str], Predicate]) -> QLineEdit:
        ed = QLineEdit(); ed.setPlaceholderText(placeholder)
        ed.textChanged.connect(lambda text: self._refine(name, make(text)))
        self.filters.addWidget(ed)
        return ed

    def add_choice_filter(self, name: str, choices: Sequence[Tuple[str, Any]],
                          make: Callable[[Any], Predicate]) -> QComboBox:
        cb = QComboBox()
        for label, value in choices:
            cb.addItem(label, value)
        cb.currentIndexChanged.connect(lambda _i: self._refine(name, make(cb.currentData())))
        self.filters.addWidget(cb)
        return cb

    def add_range_filter(self, label: str, name: str, field: str) -> None:
        ed_min = QLineEdit(); ed_min.setPlaceholderText(f"Min {label}")
        ed_max = QLineEdit(); ed_max.setPlaceholderText(f"Max {label}")

        def apply(_text: str) -> None:
            self._refine(name, cost_range(field, ed_min.text().strip(), ed_max.text().strip()))

        ed_min.textChanged.connect(apply)
        ed_max.textChanged.connect(apply)
        self.filters.addWidget(ed_min); self.filters.addWidget(ed_max)

    def _refine(self, name: str, predicate: Optional[Predicate]) -> None:
        self.view.set_client_filter(name, predicate)
        self.render()

    # -------- Données --------
    def reload(self) -> None:
        self._after(self.view.load())

    def selected(self) -> Optional[Any]:
        row = self.tbl.currentRow()
        rows = self.view.visible
        if row < 0 or row >= len(rows):
            return None
        return rows[row]

    def _after(self, _ok: bool) -> None:
        self.render()

    def render(self) -> None:
        v = self.view
        self.lab_error.setText(v.error or "")
        self.lab_error.setVisible(bool(v.error))
        rows = v.visible
        self.tbl.setRowCount(0)
        for rec in rows:
            r = self.tbl.rowCount(); self.tbl.insertRow(r)
            for c, (_title, getter) in enumerate(self.columns):
                self.tbl.setItem(r, c, QTableWidgetItem(getter(rec)))
        self.tbl.resizeRowsToContents()
        self.tbl.setVisible(not v.is_empty)
        self.lab_empty.setVisible(v.is_empty)
        self.lab_page.setText(f"Page {v.query.page} of {v.total_pages}")
        self.btn_prev.setEnabled(v.can_prev())
        self.btn_next.setEnabled(v.can_next())


class MainWindow(QMainWindow):
    def __init__(self, client: ApiClient, session: Session, settings: Settings):
        super().__init__()
        self.setWindowTitle(f"OpsDesk - {session.user.username}")
        self.resize(1280, 800)
        self.session = session
        self.settings = settings
        cur = settings.currency

        self.estimate_service = EstimateService(client)
        self.invoice_service = InvoiceService(client)
        self.customer_service = CustomerService(client)
        self.catalog_service = CatalogService(client)
        self.todo_service = TodoService(client)
        self.rfi_service = RfiService(client)
        self.payment_service = PaymentService(client)
        self.workflow = WorkflowService(self.estimate_service, self.invoice_service, self.customer_service)
        self.customers: List[CustomerRef] = []
        self.todo_lists: List[TodoList] = []

        size = settings.page_size
        catalog_size = settings.catalog_page_size

        self.estimates = ListTab(
            ListView(lambda q: self.estimate_service.get_estimates(q.page, q.page_size, q.search, q.status), size),
            [("Title", lambda e: e.title), ("Customer", lambda e: e.customer_name or ""),
             ("Status", lambda e: e.status), ("Total", lambda e: format_money(e.total_amount, cur)),
             ("Invoiced", lambda e: format_money(e.total_invoiced, cur))],
            ESTIMATE_STATUSES, "No estimates found",
        )
        self.invoices = ListTab(
            ListView(lambda q: self.invoice_service.get_invoices(q.page, q.page_size, q.search, q.status), size),
            [("Number", lambda i: i.invoice_number or ""), ("Title", lambda i: i.title),
             ("Customer", lambda i: i.customer_name or ""), ("Status", lambda i: i.status),
             ("Due", lambda i: i.due_date or ""), ("Total", lambda i: format_money(i.total_amount, cur))],
            INVOICE_STATUSES, "No invoices found",
        )
        self.customers_tab = ListTab(
            ListView(self._fetch_customers, size),
            [("Name", lambda c: c.name), ("Email", lambda c: c.email or ""),
             ("Phone", lambda c: c.phone or ""), ("Location", lambda c: c.location())],
            (), "No customers found",
        )
        self.materials = ListTab(
            ListView(lambda q: self.catalog_service.get_materials(q.page, q.page_size, q.search, q.status),
                     catalog_size),
            [("Name", lambda m: m.name), ("Category", lambda m: m.category or ""), ("Unit", lambda m: m.unit),
             ("Cost", lambda m: format_money(m.standard_cost, cur)), ("Supplier", lambda m: m.supplier or "")],
            self._categories(self.catalog_service.get_material_categories), "No materials found",
            all_label="All categories",
        )
        self.services = ListTab(
            ListView(lambda q: self.catalog_service.get_services(q.page, q.page_size, q.search, q.status),
                     catalog_size),
            [("Name", lambda s: s.name), ("Category", lambda s: s.category or ""), ("Unit", lambda s: s.unit),
             ("Rate", lambda s: format_money(s.standard_rate, cur))],
            self._categories(self.catalog_service.get_service_categories), "No services found",
            all_label="All categories",
        )
        self.todos = ListTab(
            ListView(self._fetch_todos, size),
            [("Task", lambda t: t.content), ("List", lambda t: self._todo_list_title(t.todo_list_id)),
             ("Assigned to", lambda t: t.assigned_username or ""), ("Due", lambda t: t.due_date or ""),
             ("Done", lambda t: "Yes" if t.is_completed else "")],
            (), "No tasks found",
        )
        self.rfis = ListTab(
            ListView(lambda q: self.rfi_service.get_rfis(q.page, q.page_size, q.search, q.status), size),
            [("Subject", lambda r: r.subject), ("Customer", lambda r: r.customer_name or ""),
             ("Priority", lambda r: r.priority), ("Status", lambda r: r.status),
             ("Needed by", lambda r: r.response_needed_by or "")],
            RFI_STATUSES, "No RFIs found",
        )

        for tab in (self.estimates, self.invoices, self.rfis):
            tab.add_text_filter("Customer name...", "customer", lambda text: substring("customer_name", text))
        self.materials.add_range_filter("cost", "cost", "standard_cost")
        self.materials.add_text_filter("Supplier...", "supplier", lambda text: substring("supplier", text))
        self.services.add_range_filter("rate", "rate", "standard_rate")
        self.todos.add_text_filter("Assigned to...", "assignee", lambda text: substring("assigned_username", text))
        self.todos.add_choice_filter("done", [("All tasks", None), ("Open", False), ("Done", True)],
                                     lambda value: field_equals("is_completed", value))
        self.rfis.add_choice_filter("priority", [("All priorities", None), ("Low", "low"), ("Medium", "medium"),
                                                 ("High", "high")],
                                    lambda value: field_equals("priority", value))

        self.estimates.add_action("New", lambda: self._edit_document("estimate", None))
        self.estimates.add_action("Edit", lambda: self._edit_document("estimate", self.estimates.selected()))
        self.estimates.add_action("Approve", self._approve_estimate)
        self.estimates.add_action("Create Project", self._project_from_estimate)
        self.estimates.add_action("Delete", lambda: self._delete(self.estimates, self.workflow.delete_estimate))

        self.invoices.add_action("New", lambda: self._edit_document("invoice", None))
        self.invoices.add_action("Edit", lambda: self._edit_document("invoice", self.invoices.selected()))
        self.invoices.add_action("From Estimate", self._percentage_invoice)
        self.invoices.add_action("Pay Online", self._pay_invoice)
        self.invoices.add_action("Payment Status", self._payment_status)
        self.invoices.add_action("Delete", lambda: self._delete(self.invoices, self.workflow.delete_invoice))

        self.customers_tab.add_action("New", lambda: self._edit_customer(None))
        self.customers_tab.add_action("Edit", lambda: self._edit_customer(self.customers_tab.selected()))
        self.customers_tab.add_action("Delete", lambda: self._delete(self.customers_tab, self.workflow.delete_customer))

        self.materials.add_action("Delete", lambda: self._delete(self.materials, self.catalog_service.delete_material))
        self.services.add_action("Delete", lambda: self._delete(self.services, self.catalog_service.delete_service))

        self.todos.add_action("Toggle Done", self._toggle_todo)

        self.tabs = QTabWidget()
        self.setCentralWidget(self.tabs)
        self.tabs.addTab(self.estimates, "Estimates")
        self.tabs.addTab(self.invoices, "Invoices")
        self.tabs.addTab(self.customers_tab, "Customers")
        self.tabs.addTab(self.materials, "Materials")
        self.tabs.addTab(self.services, "Services")
        self.tabs.addTab(self.todos, "Todos")
        self.tabs.addTab(self.rfis, "RFIs")

        self._load_customers()
        for tab in (self.estimates, self.invoices, self.customers_tab, self.materials, self.services,
                    self.todos, self.rfis):
            tab.reload()

    # ==================== Helpers ====================
    def _fetch_customers(self, q: ListQuery):
        return self.customer_service.get_customers(q.page, q.page_size, q.search)

    def _load_customers(self):
        try:
            self.customers = self.customer_service.get_simple_customers()
        except OpsDeskError as e:
            self.statusBar().showMessage(e.message, 5000)

    def _categories(self, fetch: Callable[[], List[str]]) -> List[str]:
        try:
            return fetch()
        except OpsDeskError as e:
            self.statusBar().showMessage(e.message, 5000)
            return []

    def _run(self, action: Callable[[], Any]) -> Optional[Any]:
        try:
            return action()
        except OpsDeskError as e:
            QMessageBox.warning(self, "Error", e.message)
            return None

    # ==================== Devis / factures ====================
    def _edit_document(self, kind: str, record):
        service = self.estimate_service if kind == "estimate" else self.invoice_service
        if record is None:
            editor = DocumentEditor.for_create(kind, service, self.customers)
        else:
            editor = DocumentEditor.for_edit(kind, record, service, self.customers)
        tab = self.estimates if kind == "estimate" else self.invoices
        if DocumentEditorDialog(editor, self, self.settings.currency).exec() == QDialog.Accepted:
            tab.reload()

    def _approve_estimate(self):
        est = self.estimates.selected()
        if est is None:
            return
        updated = self._run(lambda: self.workflow.update_estimate_status(self.session, est.id, "approved"))
        if updated is not None:
            self.estimates.view.replace(updated)
            self.estimates.render()

    def _project_from_estimate(self):
        est = self.estimates.selected()
        if est is None:
            return
        project = self._run(lambda: self.workflow.create_project_from_estimate(est))
        if project is not None:
            self.statusBar().showMessage(f"Project \"{project.name}\" created", 5000)

    def _percentage_invoice(self):
        gen = PercentageInvoiceGenerator(self.estimate_service, self.invoice_service,
                                         on_created=lambda _inv: self.invoices.reload(),
                                         currency=self.settings.currency)
        if PercentageInvoiceDialog(gen, self).exec() == QDialog.Accepted and gen.success:
            self.statusBar().showMessage(gen.success, 8000)

    # ==================== Paiement ====================
    def _pay_invoice(self):
        inv = self.invoices.selected()
        if inv is None:
            return
        checkout = self._run(lambda: self.payment_service.checkout_for(inv, self.settings.web_url))
        if checkout is not None:
            QDesktopServices.openUrl(QUrl(checkout.url))

    def _payment_status(self):
        inv = self.invoices.selected()
        if inv is None:
            return
        status = self._run(lambda: self.payment_service.get_payment_status(inv.id))
        if status is not None:
            self.statusBar().showMessage(
                f"Invoice {status.invoice_status}, payment {status.payment_status or 'pending'}", 8000
            )

    # ==================== Clients ====================
    def _edit_customer(self, customer):
        def save(payload):
            if customer is None:
                return self.customer_service.create_customer(payload)
            return self.customer_service.update_customer(customer.id, payload)

        if CustomerForm(self, customer, save).exec() == QDialog.Accepted:
            self.customers_tab.reload()
            self._load_customers()

    # ==================== Tâches ====================
    def _fetch_todos(self, q: ListQuery):
        # la vue "toutes les listes" n'est pas paginée côté serveur
        self.todo_lists = self.todo_service.get_all_todo_lists()
        match = substring("content", q.search)
        return paginate_locally([t for t in flatten_items(self.todo_lists) if match(t)], q.page, q.page_size)

    def _todo_list_title(self, list_id: Optional[int]) -> str:
        for lst in self.todo_lists:
            if lst.id == list_id:
                return lst.title
        return ""

    def _toggle_todo(self):
        item = self.todos.selected()
        if item is None:
            return
        lists = self._run(lambda: self.todo_service.toggle_item(self.todo_lists, item))
        if lists is None:
            return
        self.todo_lists = lists
        updated = next((t for t in flatten_items(lists) if t.id == item.id), None)
        if updated is not None:
            self.todos.view.replace(updated)
        self.todos.render()

    # ==================== Suppression ====================
    def _delete(self, tab: ListTab, action: Callable[[Session, int], None]):
        rec = tab.selected()
        if rec is None:
            return
        if QMessageBox.question(self, "Confirm", "Are you sure you want to delete this record?") != QMessageBox.Yes:
            return
        # Forbidden remonte ici comme n'importe quelle OpsDeskError
        if self._run(lambda: action(self.session, rec.id) or True):
            tab.view.remove(rec.id)
            tab.render()
