import pytest

from opsdesk.core.errors import ApiError, Forbidden, ValidationFailed
from opsdesk.core.models.invoice import Invoice
from opsdesk.core.models.todo import TodoItem, TodoList
from opsdesk.core.models.user import Session, User
from opsdesk.core.services.catalog_service import CatalogService
from opsdesk.core.services.customer_service import CustomerService, customer_payload
from opsdesk.core.services.invoice_service import InvoiceService
from opsdesk.core.services.payment_service import PaymentService, check_payable
from opsdesk.core.services.rfi_service import RfiService
from opsdesk.core.services.todo_service import TodoService, flatten_items


def test_get_invoices_parses_page_and_skips_invalid_rows(client, fake_api):
    fake_api.on("GET", "/api/invoices", {
        "invoices": [
            {"id": 1, "invoice_number": "INV-0001", "title": "A", "status": "sent", "total_amount": "540.00"},
            {"id": 2, "title": "B", "status": "bogus"},
        ],
        "pagination": {"currentPage": 1, "totalPages": 3, "totalInvoices": 23},
    })
    page = InvoiceService(client).get_invoices(1, 10, "", "sent")
    assert [i.id for i in page.records] == [1]
    assert page.records[0].total_amount == 540.0
    assert page.pagination.total_pages == 3
    assert page.pagination.total == 23
    assert fake_api.calls[0].url.params["status"] == "sent"


def test_missing_pagination_means_single_page(client, fake_api):
    fake_api.on("GET", "/api/rfi", {"rfis": [{"id": 1, "subject": "Beam size?", "status": "sent"}]})
    page = RfiService(client).get_rfis()
    assert len(page) == 1
    assert page.pagination.total_pages == 1


def test_download_invoice_pdf_writes_file(client, fake_api, tmp_path):
    fake_api.on("GET", "/api/invoices/5/pdf", b"%PDF-1.4 fake")
    out = tmp_path / "pdf" / "INV-5.pdf"
    data = InvoiceService(client).download_invoice_pdf(5, out)
    assert data == b"%PDF-1.4 fake"
    assert out.read_bytes() == data


def test_invoice_pdf_actions(client, fake_api):
    fake_api.on("POST", "/api/invoices/5/pdf/regenerate", {"message": "PDF regenerated"})
    svc = InvoiceService(client)
    svc.regenerate_invoice_pdf(5)
    assert len(fake_api.calls_to("POST", "/api/invoices/5/pdf/regenerate")) == 1
    assert svc.view_invoice_pdf(5) == "http://api.test/api/invoices/5/pdf/view"


def test_send_invoice_email_requires_recipient(client, fake_api):
    with pytest.raises(ValidationFailed):
        InvoiceService(client).send_invoice_email(5, "   ")
    assert fake_api.calls == []


def test_send_invoice_email_payload(client, fake_api):
    fake_api.on("POST", "/api/invoices/5/send-email", {"message": "sent"})
    InvoiceService(client).send_invoice_email(5, " ap@acme.test ", "Dana")
    assert fake_api.json_of(fake_api.calls[0]) == {"recipient_email": "ap@acme.test", "sender_name": "Dana"}


def test_simple_customers(client, fake_api):
    fake_api.on("GET", "/api/customers/simple", {"customers": [{"id": 1, "name": "Acme"}, {"id": 2, "name": "Bolt"}]})
    refs = CustomerService(client).get_simple_customers()
    assert [(c.id, c.name) for c in refs] == [(1, "Acme"), (2, "Bolt")]
    assert CustomerService.name_for(refs, 2) == "Bolt"
    assert CustomerService.name_for(refs, 9) == ""


def test_customer_blank_email_is_none(client, fake_api):
    fake_api.on("GET", "/api/customers/4", {"customer": {"id": 4, "name": "Acme", "email": "", "city": "Austin",
                                                        "state": "TX"}})
    c = CustomerService(client).get_customer(4)
    assert c.email is None
    assert c.location() == "Austin, TX"


def test_catalog_categories_accept_both_shapes(client, fake_api):
    fake_api.on("GET", "/api/catalog-materials/categories", {"categories": ["Lumber", {"category": "Electrical"}, ""]})
    assert CatalogService(client).get_material_categories() == ["Lumber", "Electrical"]


def test_catalog_materials_active_only(client, fake_api):
    fake_api.on("GET", "/api/catalog-materials", {
        "materials": [{"id": 1, "name": "2x4 stud", "standard_cost": "3.45"}],
        "pagination": {"currentPage": 1, "totalPages": 1, "totalMaterials": 1},
    })
    page = CatalogService(client).get_materials(1, 100, active_only=True)
    assert page.records[0].standard_cost == 3.45
    assert fake_api.calls[0].url.params["active_only"] == "true"


def test_toggle_todo_replaces_item_by_id(client, fake_api):
    fake_api.on("PUT", "/api/todos/items/2", {"id": 2, "todo_list_id": 1, "content": "Order tile", "is_completed": True})
    lists = [
        TodoList(id=1, title="Site", items=[TodoItem(id=1, content="Permit"), TodoItem(id=2, content="Order tile")]),
        TodoList(id=2, title="Office", items=[TodoItem(id=3, content="Invoice")]),
    ]
    out = TodoService(client).toggle_item(lists, lists[0].items[1])
    assert fake_api.json_of(fake_api.calls[0]) == {"is_completed": True}
    assert out[0].items[1].is_completed is True
    assert out[0].items[0] is lists[0].items[0]
    assert out[1] is lists[1]
    assert lists[0].items[1].is_completed is False


def test_delete_todo_item_removes_locally(client, fake_api):
    fake_api.on("DELETE", "/api/todos/items/3", {"message": "deleted"})
    lists = [TodoList(id=2, title="Office", items=[TodoItem(id=3, content="Invoice")])]
    out = TodoService(client).delete_todo_item(lists, 3)
    assert out[0].items == []


def test_check_payable():
    assert check_payable(Invoice(id=1, status="paid")).message == "Invoice is already paid"
    assert check_payable(Invoice(id=1, status="cancelled")).message == "Cannot pay a cancelled invoice"
    assert check_payable(Invoice(id=1, status="sent")) is None


def test_paid_invoice_never_reaches_provider(client, fake_api):
    with pytest.raises(ValidationFailed):
        PaymentService(client).create_payment_intent(Invoice(id=1, status="paid"))
    assert fake_api.calls == []


def test_payment_delegation(client, fake_api):
    fake_api.on("GET", "/api/payments/public-key", {"publishable_key": "pk_test_1"})
    fake_api.on("POST", "/api/payments/create-checkout-session", {"session_id": "cs_1", "url": "https://pay.test/cs_1"})
    fake_api.on("GET", "/api/payments/status/1", {"invoice_status": "paid", "payment_status": "succeeded",
                                                  "payment_details": {"status": "succeeded", "amount": 250}})
    svc = PaymentService(client)
    assert svc.get_public_key() == "pk_test_1"
    session = svc.create_checkout_session(Invoice(id=1, status="sent"), "https://app/ok", "https://app/ko")
    assert session.url == "https://pay.test/cs_1"
    assert fake_api.json_of(fake_api.calls[1])["invoice_id"] == 1
    status = svc.get_payment_status(1)
    assert status.invoice_status == "paid"
    assert status.payment_details.amount == 250.0


def test_catalog_changes_are_admin_only(client, fake_api):
    fake_api.on("POST", "/api/services", {"service": {"id": 4, "name": "Demo", "standard_rate": "85"}})
    staff = Session(token="t", user=User(id=2, username="lee", role="user"))
    admin = Session(token="t", user=User(id=1, username="dana", role="admin"))
    catalog = CatalogService(client)
    with pytest.raises(Forbidden):
        catalog.create_service(staff, {"name": "Demo"})
    assert fake_api.calls == []
    assert catalog.create_service(admin, {"name": "Demo"}).standard_rate == 85.0


def test_create_todo_item(client, fake_api):
    fake_api.on("POST", "/api/todos/lists/1/items", {"item": {"id": 9, "todo_list_id": 1, "content": "Call inspector"}})
    item = TodoService(client).create_todo_item(1, "  Call inspector ")
    assert item.id == 9
    assert fake_api.json_of(fake_api.calls[0]) == {"content": "Call inspector"}


def test_malformed_customer_response_is_an_api_error(client, fake_api):
    fake_api.on("POST", "/api/customers", {"customer": {"id": 3, "name": "Acme", "email": "not-an-email"}})
    with pytest.raises(ApiError) as exc:
        CustomerService(client).create_customer({"name": "Acme"})
    assert exc.value.message == "Failed to create customer"


def test_malformed_single_records_are_api_errors(client, fake_api):
    fake_api.on("PUT", "/api/todos/items/9", {"item": {"id": 9}})
    fake_api.on("PUT", "/api/catalog-materials/2", {"material": {"id": 2, "standard_cost": "abc"}})
    admin = Session(token="t", user=User(id=1, username="dana", role="admin"))
    with pytest.raises(ApiError):
        TodoService(client).update_todo_item(9, {"is_completed": True})
    with pytest.raises(ApiError):
        CatalogService(client).update_material(admin, 2, {"standard_cost": "abc"})


def test_customer_payload_requires_name():
    with pytest.raises(ValidationFailed):
        customer_payload({"name": "   ", "email": "ap@acme.test"})
    assert customer_payload({"name": " Acme ", "email": "", "city": "Reno"}) == {
        "name": "Acme", "email": None, "city": "Reno",
    }


def test_flatten_items_attaches_list_id():
    lists = [
        TodoList(id=1, title="Site", items=[TodoItem(id=1, content="Permit"), TodoItem(id=2, content="Tile")]),
        TodoList(id=2, title="Office", items=[TodoItem(id=3, todo_list_id=2, content="Invoice")]),
    ]
    items = flatten_items(lists)
    assert [(i.id, i.todo_list_id) for i in items] == [(1, 1), (2, 1), (3, 2)]
    assert lists[0].items[0].todo_list_id is None


def test_checkout_return_pages(client, fake_api):
    fake_api.on("POST", "/api/payments/create-checkout-session", {"url": "https://pay.test/cs_2"})
    PaymentService(client).checkout_for(Invoice(id=8, status="sent"), "https://ops.example/")
    sent = fake_api.json_of(fake_api.calls[0])
    assert sent["success_url"] == "https://ops.example/payment-success?invoice_id=8"
    assert sent["cancel_url"] == "https://ops.example/payment-cancelled?invoice_id=8"
