import pytest

from app.core.enums import FulfillmentType, Role


@pytest.fixture
async def courier(staff):
    return staff[Role.DELIVERY]


@pytest.fixture
async def ready_order(factory, place_order, customer, customer_address, staff, make_ready):
    product = await factory.product(stock=3)
    order = await place_order(customer, [(product, 1)], FulfillmentType.DELIVERY, delivery_address_id=customer_address.id)
    await make_ready(order, staff[Role.SELLER])
    return order


async def test_courier_takes_and_delivers_order(client, ready_order, courier, customer, auth_headers):
    headers = auth_headers(courier)

    available = await client.get("/delivery/available", headers=headers)
    assert [o["id"] for o in available.json()] == [ready_order.id]

    accepted = await client.post(f"/delivery/orders/{ready_order.id}/accept", headers=headers)
    assert accepted.status_code == 201
    delivery = accepted.json()
    assert delivery["status"] == "ASSIGNED"
    assert delivery["order"]["status"] == "OUT_FOR_DELIVERY"

    moved = await client.patch(f"/delivery/{delivery['id']}/location",
                               json={"latitude": -25.4, "longitude": -49.2}, headers=headers)
    assert moved.json()["current_latitude"] == -25.4

    for status in ("PICKED_UP", "IN_TRANSIT", "DELIVERED"):
        response = await client.patch(f"/delivery/{delivery['id']}/status", json={"status": status}, headers=headers)
        assert response.status_code == 200
    assert response.json()["order"]["status"] == "DELIVERED"

    rated = await client.post(f"/delivery/{delivery['id']}/rate", json={"rating": 5}, headers=auth_headers(customer))
    assert rated.json()["rating"] == 5

    tracking = await client.get(f"/delivery/order/{ready_order.id}", headers=auth_headers(customer))
    assert tracking.status_code == 200
    assert len(tracking.json()["location_history"]) == 1


async def test_skipping_a_delivery_step_is_400(client, ready_order, courier, auth_headers):
    headers = auth_headers(courier)
    delivery = (await client.post(f"/delivery/orders/{ready_order.id}/accept", headers=headers)).json()

    response = await client.patch(f"/delivery/{delivery['id']}/status", json={"status": "DELIVERED"}, headers=headers)

    assert response.status_code == 400


async def test_second_courier_gets_conflict(client, ready_order, courier, factory, auth_headers):
    rival = await factory.user(Role.DELIVERY)

    await client.post(f"/delivery/orders/{ready_order.id}/accept", headers=auth_headers(courier))
    response = await client.post(f"/delivery/orders/{ready_order.id}/accept", headers=auth_headers(rival))

    assert response.status_code == 409


async def test_manager_assigns_courier(client, ready_order, courier, staff, auth_headers):
    body = {"order_id": ready_order.id, "delivery_person_id": courier.id}

    denied = await client.post("/delivery/assign", json=body, headers=auth_headers(staff[Role.SELLER]))
    assigned = await client.post("/delivery/assign", json=body, headers=auth_headers(staff[Role.MANAGER]))

    assert denied.status_code == 403
    assert assigned.status_code == 201
    assert assigned.json()["delivery_person_id"] == courier.id


async def test_out_of_range_location_is_400(client, ready_order, courier, auth_headers):
    headers = auth_headers(courier)
    delivery = (await client.post(f"/delivery/orders/{ready_order.id}/accept", headers=headers)).json()

    response = await client.patch(f"/delivery/{delivery['id']}/location",
                                  json={"latitude": 95, "longitude": 0}, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Latitude must be between -90 and 90"


async def test_other_customers_cannot_track(client, ready_order, courier, factory, auth_headers):
    await client.post(f"/delivery/orders/{ready_order.id}/accept", headers=auth_headers(courier))
    stranger = await factory.user(Role.CUSTOMER)

    response = await client.get(f"/delivery/order/{ready_order.id}", headers=auth_headers(stranger))

    assert response.status_code == 403
