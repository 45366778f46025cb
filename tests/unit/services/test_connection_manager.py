from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.enums import Role
from app.services.websockets.manager import ConnectionManager, role_room, user_room


def make_socket(fail: bool = False):
    socket = MagicMock()
    socket.accept = AsyncMock()
    socket.send_json = AsyncMock(side_effect=RuntimeError("closed") if fail else None)
    return socket


@pytest.fixture
def manager():
    return ConnectionManager()


def test_room_names():
    assert user_room("u-1") == "user:u-1"
    assert role_room(Role.DELIVERY) == "role:DELIVERY"
    assert role_room("SELLER") == "role:SELLER"


async def test_connect_joins_user_and_role_rooms_only(manager):
    socket = make_socket()

    await manager.connect(socket, "u-1", Role.SELLER)

    socket.accept.assert_awaited_once()
    assert manager.memberships[socket] == {"user:u-1", "role:SELLER"}
    assert manager.room_size("user:u-1") == 1
    assert manager.room_size("role:SELLER") == 1
    assert manager.room_size("role:ADMIN") == 0


async def test_send_to_room_wraps_event_and_encodes_data(manager):
    seller = make_socket()
    courier = make_socket()
    await manager.connect(seller, "u-1", Role.SELLER)
    await manager.connect(courier, "u-2", Role.DELIVERY)

    await manager.send_to_room("role:SELLER", "newOrder", {"orderId": "o-1", "total": Decimal("12.50")})

    seller.send_json.assert_awaited_once_with({"event": "newOrder", "data": {"orderId": "o-1", "total": 12.5}})
    courier.send_json.assert_not_awaited()


async def test_failed_socket_is_dropped_without_raising(manager):
    healthy = make_socket()
    dead = make_socket(fail=True)
    await manager.connect(healthy, "u-1", Role.MANAGER)
    await manager.connect(dead, "u-2", Role.MANAGER)

    await manager.send_to_room(role_room(Role.MANAGER), "orderCancelled", {"orderId": "o-1"})

    healthy.send_json.assert_awaited_once()
    assert dead not in manager.memberships
    assert manager.room_size("role:MANAGER") == 1
    assert manager.room_size("user:u-2") == 0


async def test_send_to_empty_room_is_noop(manager):
    await manager.send_to_room(user_room("nobody"), "orderStatusChanged", {})

    assert manager.rooms == {}


async def test_disconnect_leaves_every_room(manager):
    socket = make_socket()
    other = make_socket()
    await manager.connect(socket, "u-1", Role.CUSTOMER)
    await manager.connect(other, "u-1", Role.CUSTOMER)

    manager.disconnect(socket)
    manager.disconnect(socket)

    assert manager.room_size("user:u-1") == 1
    assert manager.room_size("role:CUSTOMER") == 1
    await manager.send_to_room(role_room(Role.CUSTOMER), "promo", {"title": "Sale"})
    other.send_json.assert_awaited_once_with({"event": "promo", "data": {"title": "Sale"}})
