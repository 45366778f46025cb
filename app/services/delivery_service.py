# app/services/delivery_service.py
"""
Delivery coordinator: single-courier claim, status progression, location pings
and the customer's rating.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.core.enums import (
    DeliveryStatus,
    FulfillmentType,
    NotificationType,
    OrderStatus,
    Role,
    SocketEvent,
    STAFF_ROLES,
    DELIVERY_TRANSITIONS,
    HANDOFF_TRANSITIONS,
)
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from app.core.utils import as_utc, new_id, utcnow
from app.models.delivery import Delivery, DeliveryLocationHistory
from app.models.order import Order
from app.services.notification_service import NotificationFanout
from app.services.order_service import add_history, order_payload
from app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Not specified"


def validate_coordinates(latitude: float, longitude: float) -> None:
    if latitude is None or not -90 <= latitude <= 90:
        raise BadRequestError("Latitude must be between -90 and 90")
    if longitude is None or not -180 <= longitude <= 180:
        raise BadRequestError("Longitude must be between -180 and 180")


class DeliveryService:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory
        self.settings = get_settings()

    async def assign_delivery(self, order_id: str, delivery_person_id: str, actor_id: Optional[str] = None) -> Delivery:
        """Staff assignment of an order to a courier."""
        async with self.uow_factory() as uow:
            order = await self._deliverable_order(uow, order_id)
            await self._require_courier(uow, delivery_person_id)

            current = OrderStatus(order.status)
            if current not in HANDOFF_TRANSITIONS[OrderStatus.OUT_FOR_DELIVERY]:
                raise BadRequestError(f'Order in status "{current.value}" cannot be assigned for delivery')

            delivery = await self._claim(uow, order, delivery_person_id, actor_id or delivery_person_id)
            await uow.commit()

        logger.info(f"Order {order.order_number} assigned to courier {delivery_person_id} by {actor_id}")
        return delivery

    async def self_assign(self, order_id: str, courier_id: str) -> Delivery:
        """A courier takes an order from the available pool."""
        async with self.uow_factory() as uow:
            order = await self._deliverable_order(uow, order_id)
            await self._require_courier(uow, courier_id)

            if OrderStatus(order.status) is not OrderStatus.READY_FOR_PICKUP:
                raise BadRequestError("Order is not ready for delivery")

            active = await uow.deliveries.count_active(courier_id)
            if active >= self.settings.MAX_ACTIVE_DELIVERIES:
                raise BadRequestError(
                    f"You already have {active} active deliveries. "
                    f"Finish one before accepting a new order"
                )

            delivery = await self._claim(uow, order, courier_id, courier_id)
            await uow.commit()

        logger.info(f"Order {order.order_number} self-assigned by courier {courier_id}")
        return delivery

    async def list_available(self) -> List[Order]:
        async with self.uow_factory() as uow:
            return await uow.deliveries.list_available_orders()

    async def list_active(self, courier_id: str) -> List[Delivery]:
        async with self.uow_factory() as uow:
            return await uow.deliveries.list_active(courier_id)

    async def list_history(self, courier_id: str) -> List[Delivery]:
        async with self.uow_factory() as uow:
            return await uow.deliveries.list_history(courier_id)

    async def get_by_order(self, order_id: str) -> Dict[str, Any]:
        async with self.uow_factory() as uow:
            delivery = await uow.deliveries.get_by_order(order_id)
            if delivery is None:
                raise NotFoundError("Delivery not found for this order")
            locations = await uow.deliveries.latest_locations(delivery.id, self.settings.LOCATION_HISTORY_LIMIT)
            return {"delivery": delivery, "location_history": locations}

    async def update_status(
        self,
        delivery_id: str,
        status: DeliveryStatus,
        user_id: str,
        failure_reason: Optional[str] = None,
    ) -> Delivery:
        target = DeliveryStatus(status)

        async with self.uow_factory() as uow:
            delivery = await uow.deliveries.get(delivery_id, for_update=True)
            if delivery is None:
                raise NotFoundError("Delivery not found")
            if delivery.delivery_person_id != user_id:
                raise ForbiddenError("You are not the courier of this delivery")

            current = DeliveryStatus(delivery.status)
            if target not in DELIVERY_TRANSITIONS[current]:
                raise InvalidTransitionError(current, target)

            order = delivery.order
            now = utcnow()
            delivery.status = target
            if target is DeliveryStatus.PICKED_UP:
                delivery.picked_up_at = now
            elif target is DeliveryStatus.DELIVERED:
                delivery.delivered_at = now
                delivery.actual_minutes = int(round((now - as_utc(delivery.created_at)).total_seconds() / 60))
                if not await uow.orders.transition_if(
                    order.id,
                    HANDOFF_TRANSITIONS[OrderStatus.DELIVERED],
                    status=OrderStatus.DELIVERED,
                    delivered_at=now,
                ):
                    raise ConflictError(f'Order in status "{OrderStatus(order.status).value}" cannot be delivered')
                add_history(uow, order.id, OrderStatus.DELIVERED, user_id, "Delivered by courier")
            elif target is DeliveryStatus.FAILED:
                delivery.failure_reason = failure_reason or DEFAULT_FAILURE_REASON

            order_status = OrderStatus.DELIVERED if target is DeliveryStatus.DELIVERED else OrderStatus(order.status)
            NotificationFanout(uow).notify_user(
                order.customer_id,
                SocketEvent.ORDER_STATUS_CHANGED,
                "Delivery update",
                f"Delivery of order {order.order_number} is now {target.value}",
                order_payload(order, status=order_status.value, deliveryId=delivery.id, deliveryStatus=target.value),
                notification_type=NotificationType.DELIVERY_UPDATE,
            )

            await uow.session.flush()
            delivery = await uow.deliveries.get(delivery_id)
            await uow.commit()

        logger.info(f"Delivery {delivery_id} moved {current.value} -> {target.value}")
        return delivery

    async def update_location(self, delivery_id: str, latitude: float, longitude: float,
                              user_id: Optional[str] = None) -> Delivery:
        validate_coordinates(latitude, longitude)

        async with self.uow_factory() as uow:
            delivery = await uow.deliveries.get(delivery_id)
            if delivery is None:
                raise NotFoundError("Delivery not found")
            if user_id is not None and delivery.delivery_person_id != user_id:
                raise ForbiddenError("You are not the courier of this delivery")

            uow.session.add(DeliveryLocationHistory(delivery_id=delivery.id, latitude=latitude, longitude=longitude))
            delivery.current_latitude = latitude
            delivery.current_longitude = longitude
            await uow.session.flush()
            await uow.commit()
            return delivery

    async def rate_delivery(self, delivery_id: str, customer_id: str, rating: int, comment: Optional[str] = None) -> Delivery:
        if rating is None or not 1 <= rating <= 5:
            raise BadRequestError("Rating must be between 1 and 5")

        async with self.uow_factory() as uow:
            delivery = await uow.deliveries.get(delivery_id, for_update=True)
            if delivery is None:
                raise NotFoundError("Delivery not found")
            if delivery.order.customer_id != customer_id:
                raise ForbiddenError("Only the customer of this order can rate the delivery")
            if DeliveryStatus(delivery.status) is not DeliveryStatus.DELIVERED:
                raise BadRequestError("Only completed deliveries can be rated")
            if delivery.rating is not None:
                raise ConflictError("This delivery has already been rated")

            delivery.rating = rating
            delivery.rating_comment = comment
            await uow.session.flush()
            await uow.commit()

        logger.info(f"Delivery {delivery_id} rated {rating} by customer {customer_id}")
        return delivery

    async def _deliverable_order(self, uow: UnitOfWork, order_id: str) -> Order:
        order = await uow.orders.get(order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order not found")
        if FulfillmentType(order.fulfillment_type) is not FulfillmentType.DELIVERY:
            raise BadRequestError("Only delivery orders can be assigned to a courier")
        if order.delivery is not None or order.delivery_person_id is not None:
            raise ConflictError("Order already has a delivery assigned")
        return order

    async def _require_courier(self, uow: UnitOfWork, user_id: str) -> None:
        courier = await uow.users.get_active(user_id)
        if courier is None or Role(courier.role) is not Role.DELIVERY:
            raise BadRequestError("Delivery person is not an active courier")

    async def _claim(self, uow: UnitOfWork, order: Order, courier_id: str, actor_id: str) -> Delivery:
        """
        Conditional order update guarded on the expected statuses and an empty
        courier slot, backed by the unique deliveries.order_id constraint.
        """
        if not await uow.orders.transition_if(
            order.id,
            HANDOFF_TRANSITIONS[OrderStatus.OUT_FOR_DELIVERY],
            require_no_courier=True,
            status=OrderStatus.OUT_FOR_DELIVERY,
            delivery_person_id=courier_id,
        ):
            raise ConflictError("Order already has a delivery assigned")

        delivery_id = new_id()
        uow.session.add(Delivery(
            id=delivery_id,
            order_id=order.id,
            delivery_person_id=courier_id,
            status=DeliveryStatus.ASSIGNED,
        ))
        try:
            await uow.session.flush()
        except IntegrityError as e:
            raise ConflictError("Order already has a delivery assigned") from e

        add_history(uow, order.id, OrderStatus.OUT_FOR_DELIVERY, actor_id, f"Assigned to courier {courier_id}")

        payload = order_payload(order, status=OrderStatus.OUT_FOR_DELIVERY.value, deliveryId=delivery_id, deliveryPersonId=courier_id)
        fanout = NotificationFanout(uow)
        fanout.notify_user(
            courier_id,
            SocketEvent.DELIVERY_ASSIGNED,
            "New delivery",
            f"Order {order.order_number} was assigned to you",
            payload,
            notification_type=NotificationType.DELIVERY_UPDATE,
        )
        await fanout.notify_roles(
            STAFF_ROLES,
            SocketEvent.DELIVERY_ASSIGNED,
            "Courier assigned",
            f"Order {order.order_number} is out for delivery",
            payload,
            notification_type=NotificationType.DELIVERY_UPDATE,
        )
        fanout.notify_user(
            order.customer_id,
            SocketEvent.ORDER_STATUS_CHANGED,
            "Order out for delivery",
            f"Your order {order.order_number} is on its way",
            payload,
        )

        return await uow.deliveries.get(delivery_id)
