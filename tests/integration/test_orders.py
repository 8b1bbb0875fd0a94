import uuid

import pytest
from fastapi import status
from sqlalchemy import func, select

from app.models.order import Order


def _order_payload(pharmacy_id, items, **overrides) -> dict:
    payload = {
        "customer_name": "Walk In",
        "customer_phone": "+2348035550101",
        "customer_email": "walkin@example.com",
        "pharmacy_id": str(pharmacy_id),
        "items": items,
    }
    payload.update(overrides)
    return payload


async def _order_count(db_session) -> int:
    return await db_session.scalar(select(func.count(Order.id)))


@pytest.mark.asyncio
async def test_anonymous_order_decrements_online_stock(
    client, db_session, pharmacy, otc_medication, mock_notification
):
    medication_id = otc_medication.id
    payload = _order_payload(
        pharmacy.id, [{"medication_id": str(medication_id), "quantity": 3, "price": "0.01"}]
    )

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["message"] == "Order placed successfully"
    assert body["confirmation_code"] == body["order"]["confirmation_code"]
    assert len(body["confirmation_code"]) == 16

    order = body["order"]
    assert order["status"] == "pending"
    assert order["order_type"] == "online"
    assert order["is_guest_order"] is True
    assert order["customer_id"] is None
    assert order["pharmacy_name"] == "Central Pharmacy"
    assert order["total_number_of_items"] == 3
    # The client-sent price is ignored
    assert order["total_price"] == 30.0
    assert order["items"][0]["price_per_unit"] == 10.0

    await db_session.refresh(otc_medication)
    assert otc_medication.online_stock == 47
    assert otc_medication.stock_quantity == 47
    assert otc_medication.in_person_stock == 0

    mock_notification.notify.assert_awaited_once()
    kwargs = mock_notification.notify.await_args.kwargs
    assert kwargs["email"] == "walkin@example.com"
    assert kwargs["attachment"].startswith(b"%PDF")


async def test_duplicate_lines_are_merged(client, pharmacy, otc_medication):
    line = {"medication_id": str(otc_medication.id), "quantity": 2}

    response = await client.post("/api/orders", json=_order_payload(pharmacy.id, [line, line]))

    assert response.status_code == status.HTTP_201_CREATED
    items = response.json()["order"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 4


async def test_insufficient_stock_rolls_back_whole_order(
    client, db_session, pharmacy, otc_medication, rx_medication
):
    """The first line's decrement is undone when a later line runs out."""
    otc_id, rx_id = otc_medication.id, rx_medication.id
    payload = _order_payload(
        pharmacy.id,
        [
            {"medication_id": str(otc_id), "quantity": 5},
            {"medication_id": str(rx_id), "quantity": 16},
        ],
    )

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Insufficient stock for Amoxicillin 500mg"

    await db_session.refresh(otc_medication)
    await db_session.refresh(rx_medication)
    assert otc_medication.online_stock == 50
    assert otc_medication.stock_quantity == 50
    assert rx_medication.online_stock == 15
    assert rx_medication.stock_quantity == 20
    assert await _order_count(db_session) == 0


async def test_in_person_stock_is_not_sold_online(client, db_session, pharmacy, rx_medication):
    # 20 in total but only 15 online
    response = await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, [{"medication_id": str(rx_medication.id), "quantity": 18}]),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    await db_session.refresh(rx_medication)
    assert rx_medication.in_person_stock == 5


@pytest.mark.parametrize(
    "items",
    [
        [],
        [{"medication_id": str(uuid.uuid4()), "quantity": 0}],
        [{"medication_id": str(uuid.uuid4()), "quantity": -2}],
    ],
)
async def test_invalid_items_are_rejected(client, pharmacy, items):
    response = await client.post("/api/orders", json=_order_payload(pharmacy.id, items))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Validation failed"


async def test_unknown_pharmacy_and_medication(client, pharmacy, otc_medication):
    line = [{"medication_id": str(otc_medication.id), "quantity": 1}]
    unknown_pharmacy = await client.post("/api/orders", json=_order_payload(uuid.uuid4(), line))
    assert unknown_pharmacy.status_code == status.HTTP_404_NOT_FOUND

    unknown_medication = await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, [{"medication_id": str(uuid.uuid4()), "quantity": 1}]),
    )
    assert unknown_medication.status_code == status.HTTP_404_NOT_FOUND


async def test_medication_from_another_pharmacy_is_rejected(
    client, other_pharmacy, otc_medication
):
    response = await client.post(
        "/api/orders",
        json=_order_payload(
            other_pharmacy.id, [{"medication_id": str(otc_medication.id), "quantity": 1}]
        ),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_customer_needs_approved_prescription(
    client, customer_token, pharmacy, rx_medication
):
    response = await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, [{"medication_id": str(rx_medication.id), "quantity": 1}]),
        headers=customer_token,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_customer_order_with_approved_prescription(
    client, customer_token, test_customer, pharmacy, rx_medication, approved_prescription
):
    customer_id = str(test_customer.id)
    response = await client.post(
        "/api/orders",
        json=_order_payload(
            pharmacy.id,
            [{"medication_id": str(rx_medication.id), "quantity": 2}],
            customer_email=None,
            order_type="pickup",
        ),
        headers=customer_token,
    )

    assert response.status_code == status.HTTP_201_CREATED
    order = response.json()["order"]
    assert order["is_guest_order"] is False
    assert order["customer_id"] == customer_id
    assert order["order_type"] == "pickup"
    # Falls back to the account email
    assert order["customer_email"] == "ada@example.com"
    assert order["total_price"] == 51.0

    mine = await client.get("/api/orders/me", headers=customer_token)
    assert mine.status_code == status.HTTP_200_OK
    assert [o["confirmation_code"] for o in mine.json()] == [order["confirmation_code"]]
    assert mine.json()[0]["item_count"] == 1


async def test_get_order_by_confirmation_code(client, pharmacy, otc_medication):
    created = await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, [{"medication_id": str(otc_medication.id), "quantity": 1}]),
    )
    code = created.json()["confirmation_code"]

    response = await client.get(f"/api/orders/{code}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["items"][0]["medication_name"] == "Paracetamol 500mg"

    lowercase = await client.get(f"/api/orders/{code.lower()}")
    assert lowercase.status_code == status.HTTP_200_OK

    missing = await client.get("/api/orders/UNKNOWNCODE00000")
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_find_orders_by_customer(client, pharmacy, otc_medication):
    line = [{"medication_id": str(otc_medication.id), "quantity": 1}]
    for _ in range(12):
        await client.post("/api/orders", json=_order_payload(pharmacy.id, line))
    await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, line, customer_phone="+2348099999999"),
    )

    response = await client.post(
        "/api/orders/find-by-customer",
        json={"customer_name": "walk", "customer_phone": "+2348035550101"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()) == 10
    assert all(o["customer_phone"] == "+2348035550101" for o in response.json())

    by_email = await client.post(
        "/api/orders/find-by-customer",
        json={
            "customer_name": "Walk In",
            "customer_phone": "+2348035550101",
            "customer_email": "someone-else@example.com",
        },
    )
    assert by_email.json() == []

    missing_phone = await client.post(
        "/api/orders/find-by-customer", json={"customer_name": "Walk In"}
    )
    assert missing_phone.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.parametrize("name", ["%", "_", "W%n"])
async def test_find_by_customer_treats_wildcards_literally(client, pharmacy, otc_medication, name):
    await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, [{"medication_id": str(otc_medication.id), "quantity": 1}]),
    )

    response = await client.post(
        "/api/orders/find-by-customer",
        json={"customer_name": name, "customer_phone": "+2348035550101"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == []


async def test_receipt_pdf(client, pharmacy, otc_medication):
    created = await client.post(
        "/api/orders",
        json=_order_payload(pharmacy.id, [{"medication_id": str(otc_medication.id), "quantity": 2}]),
    )
    code = created.json()["confirmation_code"]

    response = await client.get(f"/api/orders/{code}/receipt")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert f"receipt-{code}.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")
