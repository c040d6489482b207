from decimal import Decimal

API = "/api/v1"

CUSTOMER = {
    "first_name": "Grace",
    "last_name": "Hopper",
    "email": "grace@example.com",
    "phone": "+49 30 7654321",
    "address": "Unter den Linden 5",
    "city": "Berlin",
    "state": "Berlin",
    "zip": "10117",
    "country": "Germany",
}

def booking_payload(cart_id, start="14:00", end="16:00", **extra):
    payload = {
        "cart_id": cart_id,
        "booking_date": "2030-06-15",
        "start_time": start,
        "end_time": end,
        "customer": CUSTOMER,
        "payment_method": "reservation",
    }
    payload.update(extra)
    return payload

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

def test_create_and_fetch_booking(client, ids):
    response = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"]))
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    booking = body["booking"]
    assert booking["status"] == "PENDING"
    assert booking["start_time"] == "14:00"
    assert Decimal(booking["total_amount"]) == Decimal("300.00")

    fetched = client.get(f"{API}/bookings/{booking['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["customer_email"] == "grace@example.com"

def test_unknown_booking_is_404(client):
    response = client.get(f"{API}/bookings/999999")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "BOOKING_NOT_FOUND"

def test_overlap_returns_409(client, ids):
    client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"]))
    response = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"], start="15:00", end="17:00"))

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "SLOT_ALREADY_BOOKED"
    assert detail["message"] == "Time slot is already booked"

def test_invalid_request_returns_400(client, ids):
    response = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"], start="16:00", end="14:00"))
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_BOOKING_REQUEST"

    response = client.post(f"{API}/bookings", json=booking_payload("not-a-number"))
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_REQUEST"

def test_multi_date_booking_with_shipping(client, ids):
    payload = booking_payload(
        ids["cart_taco"],
        dates=[
            {"booking_date": "2030-06-16", "start_time": "10:00", "end_time": "12:00"},
            {"booking_date": "2030-06-15", "start_time": "14:00", "end_time": "16:00"},
        ],
        delivery_method="shipping",
        shipping={"address": "Unter den Linden 5", "city": "Berlin", "state": "Berlin", "zip": "10117"},
    )
    response = client.post(f"{API}/bookings", json=payload)
    assert response.status_code == 201
    booking = response.json()["booking"]
    assert [(d["booking_date"], d["start_time"]) for d in booking["dates"]] == [("2030-06-15", "14:00"), ("2030-06-16", "10:00")]
    assert booking["delivery_method"] == "shipping"
    assert Decimal(booking["shipping_amount"]) == Decimal("40.00")
    assert Decimal(booking["total_amount"]) == Decimal("640.00")

    clash = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"], dates=[
        {"booking_date": "2030-06-17", "start_time": "10:00", "end_time": "12:00"},
        {"booking_date": "2030-06-16", "start_time": "11:00", "end_time": "13:00"},
    ]))
    assert clash.status_code == 409
    assert clash.json()["detail"]["details"]["date"] == "2030-06-16"

def test_unknown_cart_returns_404(client):
    response = client.post(f"{API}/bookings", json=booking_payload(999999))
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "CART_NOT_FOUND"

def test_coupon_rejection_returns_422_with_reason(client, ids):
    response = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"], pricing={"coupon_code": "OLDIE"}))
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "COUPON_REJECTED"
    assert detail["details"]["reason_code"] == "EXPIRED"
    assert detail["message"] == "This coupon has expired"

def test_cancel_booking(client, ids):
    created = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"])).json()["booking"]

    response = client.post(f"{API}/bookings/{created['id']}/cancel", json={"cancellation_reason": "rain"})
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "CANCELLED"

    again = client.post(f"{API}/bookings/{created['id']}/cancel")
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"

def test_availability_endpoints(client, ids):
    cart_id = ids["cart_taco"]
    client.post(f"{API}/bookings", json=booking_payload(cart_id))

    response = client.get(f"{API}/availability", params={
        "cart_id": cart_id, "date": "2030-06-15", "start_time": "16:00", "end_time": "18:00"
    })
    assert response.status_code == 200
    body = response.json()
    assert [(s["start_time"], s["end_time"]) for s in body["booked_slots"]] == [("14:00", "16:00")]
    assert body["is_available"] is True
    assert len(body["available_slots"]) == 4

    response = client.get(f"{API}/availability/bulk", params={
        "cart_id": cart_id, "start_date": "2030-06-01", "end_date": "2030-06-30"
    })
    assert response.status_code == 200
    assert response.json()["total_bookings"] == 1
    assert list(response.json()["booked_dates"]) == ["2030-06-15"]

    response = client.post(f"{API}/availability/check", json={
        "cart_id": cart_id,
        "candidates": [
            {"date": "2030-06-15", "start_time": "15:00", "end_time": "17:00"},
            {"date": "2030-06-15", "start_time": "9:00", "end_time": "14:00"},
        ]
    })
    assert response.status_code == 200
    body = response.json()
    assert [r["available"] for r in body["results"]] == [False, True]
    assert body["all_available"] is False

def test_availability_rejects_half_window(client, ids):
    response = client.get(f"{API}/availability", params={
        "cart_id": ids["cart_taco"], "date": "2030-06-15", "start_time": "16:00"
    })
    assert response.status_code == 400

def test_coupon_validate(client, catalogue):
    response = client.post(f"{API}/coupons/validate", json={"coupon_code": "save10", "order_amount": "100"})
    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert Decimal(body["discount_amount"]) == Decimal("5.00")
    assert Decimal(body["final_amount"]) == Decimal("95.00")
    assert body["coupon"]["code"] == "SAVE10"

    response = client.post(f"{API}/coupons/validate", json={"coupon_code": "SAVE10", "order_amount": "10"})
    body = response.json()
    assert body["valid"] is False
    assert body["reason_code"] == "BELOW_MINIMUM"

def test_reconcile_payment(client, ids):
    created = client.post(f"{API}/bookings", json=booking_payload(ids["cart_taco"], payment_method="paypal")).json()

    event = {"booking_id": created["booking"]["id"], "outcome": "captured", "external_reference_id": "PAY-77"}
    response = client.post(f"{API}/payments/reconcile", json=event)
    assert response.status_code == 200
    body = response.json()
    assert body["applied"] is True
    assert body["booking"]["status"] == "CONFIRMED"
    assert body["booking"]["payment_status"] == "PAID"

    replay = client.post(f"{API}/payments/reconcile", json=event)
    assert replay.json()["applied"] is False

    response = client.post(f"{API}/payments/bookings/{created['booking']['id']}/complete")
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "COMPLETED"
