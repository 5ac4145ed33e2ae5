"""
Invoice endpoints.
"""

import uuid

import pytest


def invoice_payload(**overrides):
    payload = {
        "customer_id": str(uuid.uuid4()),
        "customer_name": "Northside Pharmacy",
        "items": [
            {"item_type": "DELIVERY", "description": "Courier run", "unit_price": "15.00"},
            {"item_type": "OTHER", "description": "Insulated box", "quantity": 2, "unit_price": "3.25"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def invoice(client, finance_headers):
    response = await client.post("/v1/invoices", json=invoice_payload(), headers=finance_headers)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_invoice(client, finance_headers, publisher):
    response = await client.post("/v1/invoices", json=invoice_payload(), headers=finance_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "DRAFT"
    assert data["subtotal"] == "21.50"
    assert data["tax_amount"] == "2.15"
    assert data["total_amount"] == "23.65"
    assert data["created_by"] == 2
    assert [item["line_total"] for item in data["items"]] == ["15.00", "6.50"]
    assert publisher.event_types == ["invoice.created"]


@pytest.mark.asyncio
async def test_invoice_delivery_endpoint(client, finance_headers):
    response = await client.post(
        "/v1/invoices/deliveries",
        json={
            "customer_id": str(uuid.uuid4()),
            "customer_name": "St. Mary Clinic",
            "order_number": "ORD-55",
            "distance_km": 10,
            "delivery_time": "2024-06-05T12:00:00",
        },
        headers=finance_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert len(data["items"]) == 2
    assert data["subtotal"] == "27.00"
    assert data["notes"] == "Invoice for delivery: ORD-55"


@pytest.mark.asyncio
async def test_get_by_id_and_number(client, dispatcher_headers, invoice):
    by_id = await client.get(f"/v1/invoices/{invoice['id']}", headers=dispatcher_headers)
    by_number = await client.get(f"/v1/invoices/number/{invoice['invoice_number']}", headers=dispatcher_headers)

    assert by_id.status_code == 200
    assert by_number.json()["id"] == invoice["id"]


@pytest.mark.asyncio
async def test_list_invoices(client, finance_headers, invoice):
    response = await client.get(
        "/v1/invoices", params={"customer_id": invoice["customer_id"], "status": "DRAFT"}, headers=finance_headers
    )

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["invoices"][0]["id"] == invoice["id"]


@pytest.mark.asyncio
async def test_status_and_payment(client, finance_headers, invoice, publisher):
    sent = await client.put(
        f"/v1/invoices/{invoice['id']}/status", json={"status": "SENT"}, headers=finance_headers
    )
    assert sent.status_code == 200
    assert sent.json()["sent_at"] is not None

    paid = await client.put(
        f"/v1/invoices/{invoice['id']}/payment",
        json={"payment_method": "CARD", "payment_date": "2024-06-10", "payment_reference": "AUTH-1"},
        headers=finance_headers,
    )
    assert paid.status_code == 200
    assert paid.json()["status"] == "PAID"
    assert paid.json()["payment_date"] == "2024-06-10"
    assert publisher.event_types == ["invoice.created", "invoice.status_updated", "invoice.paid"]


@pytest.mark.asyncio
async def test_invalid_transition_is_409(client, finance_headers, invoice):
    response = await client.put(
        f"/v1/invoices/{invoice['id']}/status", json={"status": "PAID"}, headers=finance_headers
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"
    assert response.json()["details"] == {"current_status": "DRAFT", "requested_status": "PAID"}


@pytest.mark.asyncio
async def test_update_header(client, finance_headers, invoice):
    response = await client.put(
        f"/v1/invoices/{invoice['id']}",
        json={"customer_address": "12 Harbour Rd", "due_date": "2099-01-01"},
        headers=finance_headers,
    )

    assert response.status_code == 200
    assert response.json()["customer_address"] == "12 Harbour Rd"
    assert response.json()["total_amount"] == invoice["total_amount"]


@pytest.mark.asyncio
async def test_overdue_endpoints(client, finance_headers):
    created = await client.post(
        "/v1/invoices",
        json=invoice_payload(issue_date="2020-01-01", due_date="2020-01-31"),
        headers=finance_headers,
    )
    invoice_id = created.json()["id"]
    await client.put(f"/v1/invoices/{invoice_id}/status", json={"status": "SENT"}, headers=finance_headers)

    overdue = await client.get("/v1/invoices/overdue", headers=finance_headers)
    assert [i["id"] for i in overdue.json()] == [invoice_id]

    due = await client.get(
        "/v1/invoices/due-between",
        params={"start_date": "2020-01-01", "end_date": "2020-02-01"},
        headers=finance_headers,
    )
    assert [i["id"] for i in due.json()] == [invoice_id]

    marked = await client.post("/v1/invoices/overdue/mark", headers=finance_headers)
    assert [i["status"] for i in marked.json()] == ["OVERDUE"]


@pytest.mark.asyncio
async def test_delete_requires_admin(client, finance_headers, admin_headers, invoice):
    as_finance = await client.delete(f"/v1/invoices/{invoice['id']}", headers=finance_headers)
    assert as_finance.status_code == 403
    assert as_finance.json()["error_code"] == "ERR_PERM_001"

    as_admin = await client.delete(f"/v1/invoices/{invoice['id']}", headers=admin_headers)
    assert as_admin.status_code == 204

    gone = await client.get(f"/v1/invoices/{invoice['id']}", headers=admin_headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_dispatcher_cannot_create(client, dispatcher_headers):
    response = await client.post("/v1/invoices", json=invoice_payload(), headers=dispatcher_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_empty_items_rejected(client, finance_headers):
    response = await client.post("/v1/invoices", json=invoice_payload(items=[]), headers=finance_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_negative_line_total_rejected_over_http(client, finance_headers):
    items = [
        {
            "item_type": "DELIVERY",
            "description": "Courier run",
            "unit_price": "10.00",
            "quantity": 2,
            "line_total": "-500.00",
        }
    ]
    response = await client.post("/v1/invoices", json=invoice_payload(items=items), headers=finance_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "ERR_VALIDATION_002"
    assert body["details"] == {"field": "line_total"}

    listed = await client.get("/v1/invoices", headers=finance_headers)
    assert listed.json()["total"] == 0
