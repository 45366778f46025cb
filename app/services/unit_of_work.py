# app/services/unit_of_work.py
"""
Transaction boundary for every mutating workflow operation.

A UnitOfWork owns one AsyncSession and the repositories bound to it. Realtime
events raised while the work is in progress are queued in an outbox and
pushed to sockets only after the transaction commits; a rollback drops them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories import (
    UserRepository,
    OrderRepository,
    StockRepository,
    PickingRepository,
    DeliveryRepository,
    NotificationRepository,
    SaleRepository,
)
from app.services.websockets.manager import ConnectionManager

logger = logging.getLogger(__name__)


@dataclass
class RealtimeEvent:
    room: str
    event: str
    data: Any = field(default=None)


class UnitOfWork:

    def __init__(self, session_factory: async_sessionmaker, manager: Optional[ConnectionManager] = None):
        self.session_factory = session_factory
        self.manager = manager
        self.session: Optional[AsyncSession] = None
        self.outbox: List[RealtimeEvent] = []
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self.session_factory()
        self.outbox = []
        self._committed = False

        self.users = UserRepository(self.session)
        self.orders = OrderRepository(self.session)
        self.stock = StockRepository(self.session)
        self.picking = PickingRepository(self.session)
        self.deliveries = DeliveryRepository(self.session)
        self.notifications = NotificationRepository(self.session)
        self.sales = SaleRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if exc_type is not None:
                await self.rollback()
            elif not self._committed:
                # Read-only work. close() ends the transaction without expiring
                # what was loaded, so returned objects stay readable.
                self.outbox = []
        finally:
            await self.session.close()

    def emit(self, room: str, event: str, data: Any = None) -> None:
        self.outbox.append(RealtimeEvent(room=room, event=event, data=data))

    async def commit(self) -> None:
        await self.session.commit()
        self._committed = True
        events, self.outbox = self.outbox, []
        await self._publish(events)

    async def rollback(self) -> None:
        if self.outbox:
            logger.debug(f"Discarding {len(self.outbox)} realtime event(s) on rollback")
        self.outbox = []
        await self.session.rollback()

    async def _publish(self, events: List[RealtimeEvent]) -> None:
        if self.manager is None:
            return
        for item in events:
            try:
                await self.manager.send_to_room(item.room, item.event, item.data)
            except Exception as e:
                logger.error(f"Failed to push {item.event} to {item.room}: {e}", exc_info=True)


def unit_of_work_factory(session_factory: async_sessionmaker, manager: Optional[ConnectionManager] = None) -> Callable[[], UnitOfWork]:
    def _factory() -> UnitOfWork:
        return UnitOfWork(session_factory, manager)
    return _factory
