import json

import httpx
import pytest

from opsdesk.core.errors import ValidationFailed
from opsdesk.core.models.customer import CustomerRef
from opsdesk.core.models.estimate import Estimate
from opsdesk.core.models.invoice import Invoice
from opsdesk.core.services.document_editor import DocumentEditor
from opsdesk.core.services.estimate_service import EstimateService
from opsdesk.core.services.invoice_service import InvoiceService

CUSTOMERS = [CustomerRef(id=1, name="Acme Builders"), CustomerRef(id=3, name="Harbor Dental")]

ESTIMATE = {
    "id": 7,
    "title": "Kitchen remodel",
    "description": "Phase 1",
    "customer_id": 3,
    "customer_name": "Harbor Dental",
    "status": "sent",
    "tax_rate": "8.00",
    "valid_until": "2026-12-01",
    "notes": "Net 30",
    "items": [
        {"description": "Cabinets", "quantity": 2, "unit_price": "50.00"},
        {"description": "  ", "quantity": 1, "unit_price": 0},
    ],
    "total_amount": "108.00",
}


def _echo(key, record_id):
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={key: {**body, "id": record_id}, "message": "ok"})
    return handler


def test_create_defaults():
    editor = DocumentEditor.for_create("estimate", None, CUSTOMERS)
    assert editor.header["title"] == ""
    assert editor.header["customer_id"] is None
    assert editor.header["tax_rate"] == 0.0
    assert editor.header["status"] == "draft"
    assert len(editor.items) == 1
    assert not editor.is_edit


def test_edit_without_items_gets_blank_row():
    record = Estimate.model_validate({**ESTIMATE, "items": None})
    editor = DocumentEditor.for_edit("estimate", record, None, CUSTOMERS)
    assert len(editor.items) == 1
    assert editor.items[0].is_blank()


def test_select_customer_uses_loaded_list():
    editor = DocumentEditor.for_create("invoice", None, CUSTOMERS)
    editor.set_field("project_id", 4)
    editor.select_customer(1)
    assert editor.header["customer_id"] == 1
    assert editor.header["customer_name"] == "Acme Builders"
    assert editor.header["project_id"] is None
    editor.select_customer(99)
    assert editor.header["customer_name"] == ""
    editor.select_customer(None)
    assert editor.header["customer_id"] is None


def test_set_field_rejects_unknown_names_and_statuses():
    editor = DocumentEditor.for_create("estimate", None)
    with pytest.raises(KeyError):
        editor.set_field("due_date", "2026-01-01")
    with pytest.raises(ValidationFailed):
        editor.set_field("status", "paid")


def test_totals_use_header_tax_rate():
    editor = DocumentEditor.for_create("invoice", None)
    editor.items.update_item(0, "quantity", 2)
    editor.items.update_item(0, "unit_price", 50)
    editor.items.add_item()
    editor.items.update_item(1, "unit_price", 25)
    editor.set_field("tax_rate", "8")
    assert editor.totals().total == pytest.approx(135.0)


def test_blank_rows_are_not_submitted(client, fake_api):
    fake_api.on("POST", "/api/invoices", handler=_echo("invoice", 11))
    editor = DocumentEditor.for_create("invoice", InvoiceService(client), CUSTOMERS)
    editor.set_field("title", "Deck repair")
    editor.set_field("due_date", "")
    editor.items.add_item()

    saved = editor.submit()

    sent = fake_api.json_of(fake_api.calls_to("POST", "/api/invoices")[0])
    assert sent == {
        "title": "Deck repair",
        "description": "",
        "customer_id": None,
        "customer_name": "",
        "customer_email": "",
        "customer_phone": "",
        "customer_address": "",
        "estimate_id": None,
        "project_id": None,
        "tax_rate": 0.0,
        "notes": "",
        "status": "draft",
        "items": [],
    }
    assert saved.id == 11
    assert editor.record_id == 11
    assert editor.error is None


def test_edit_round_trip_is_idempotent(client, fake_api):
    fake_api.on("PUT", "/api/estimates/7", handler=_echo("estimate", 7))
    record = Estimate.model_validate(ESTIMATE)
    editor = DocumentEditor.for_edit("estimate", record, EstimateService(client), CUSTOMERS)

    saved = editor.submit()

    sent = fake_api.json_of(fake_api.calls_to("PUT", "/api/estimates/7")[0])
    assert sent == {
        "title": "Kitchen remodel",
        "description": "Phase 1",
        "customer_id": 3,
        "customer_name": "Harbor Dental",
        "customer_email": "",
        "customer_phone": "",
        "customer_address": "",
        "project_id": None,
        "tax_rate": 8.0,
        "valid_until": "2026-12-01",
        "notes": "Net 30",
        "status": "sent",
        "items": [{"description": "Cabinets", "quantity": 2.0, "unit_price": 50.0}],
    }
    for field in ("title", "description", "customer_id", "customer_name", "tax_rate",
                  "valid_until", "notes", "status"):
        assert getattr(saved, field) == getattr(record, field)
    assert [i.description for i in saved.items] == ["Cabinets"]


def test_server_rejection_keeps_form_data(client, fake_api):
    fake_api.on("POST", "/api/estimates", {"message": "Customer not found"}, status=400)
    editor = DocumentEditor.for_create("estimate", EstimateService(client), CUSTOMERS)
    editor.set_field("title", "Roof")
    editor.items.update_item(0, "description", "Shingles")

    assert editor.submit() is None
    assert editor.error == "Customer not found"
    assert editor.header["title"] == "Roof"
    assert editor.items[0].description == "Shingles"
    assert editor.loading is False
    assert not editor.is_edit


def test_submit_ignored_while_in_flight(client, fake_api):
    editor = DocumentEditor.for_create("estimate", EstimateService(client))
    editor.loading = True
    assert editor.submit() is None
    assert fake_api.calls == []


def test_edit_can_clear_fields_and_relink_customer(client, fake_api):
    fake_api.on("PUT", "/api/invoices/5", handler=_echo("invoice", 5))
    record = Invoice.model_validate({
        "id": 5, "title": "Deck repair", "description": "Rear deck", "notes": "Net 30",
        "customer_id": 3, "customer_name": "Harbor Dental", "project_id": 4,
        "due_date": "2026-11-30", "items": [],
    })
    editor = DocumentEditor.for_edit("invoice", record, InvoiceService(client), CUSTOMERS)
    editor.set_field("notes", "")
    editor.set_field("description", "")
    editor.set_field("due_date", "")
    editor.select_customer(1)

    editor.submit()

    sent = fake_api.json_of(fake_api.calls_to("PUT", "/api/invoices/5")[0])
    assert sent["notes"] == ""
    assert sent["description"] == ""
    assert sent["customer_id"] == 1
    assert sent["customer_name"] == "Acme Builders"
    assert "project_id" in sent and sent["project_id"] is None
    assert "due_date" not in sent


def test_unlinking_customer_sends_null(client, fake_api):
    fake_api.on("PUT", "/api/estimates/7", handler=_echo("estimate", 7))
    editor = DocumentEditor.for_edit("estimate", Estimate.model_validate(ESTIMATE),
                                     EstimateService(client), CUSTOMERS)
    editor.select_customer(None)

    editor.submit()

    sent = fake_api.json_of(fake_api.calls_to("PUT", "/api/estimates/7")[0])
    assert sent["customer_id"] is None
    assert sent["customer_name"] == ""


def test_freeform_customer_without_link():
    editor = DocumentEditor.for_create("invoice", None, CUSTOMERS)
    editor.set_field("customer_name", "Walk-in client")
    editor.set_field("customer_phone", "555-0100")
    editor.set_field("customer_address", "12 Pier Rd")
    payload = editor.build_payload()
    assert payload["customer_id"] is None
    assert (payload["customer_name"], payload["customer_phone"], payload["customer_address"]) == (
        "Walk-in client", "555-0100", "12 Pier Rd",
    )
