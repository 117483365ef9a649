import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from shared.contracts import OrderStatus
from .models import Order, OrderItem
from .repository import OrderRepository
from .schemas import OrderCreate

logger = structlog.get_logger(__name__)


class OrderAlreadyExists(Exception):
    pass


class InvalidStatus(ValueError):
    pass


class OrderService:
    @staticmethod
    async def create_order(db: AsyncSession, data: OrderCreate) -> Order:
        header = data.header
        if header.status != OrderStatus.AWAITING_PAYMENT:
            raise InvalidStatus("new orders must start in AWAITING_PAYMENT")

        order = Order(
            order_id=header.order_id,
            user_id=header.user_id,
            total_amount=header.total_amount,
            payment_amount=header.payment_amount,
            shipping_fee=header.shipping_fee,
            status=header.status,
            shipping_address=header.shipping_address,
        )
        items = [
            OrderItem(
                order_id=header.order_id,
                variant_id=item.variant_id,
                product_id=item.product_id,
                title=item.title,
                image_url=item.image_url,
                unit_price=item.unit_price,
                quantity=item.quantity,
                subtotal=item.subtotal,
            )
            for item in data.items
        ]
        try:
            created = await OrderRepository.create_order_atomic(db, order, items)
        except IntegrityError as e:
            raise OrderAlreadyExists(f"order {header.order_id} already exists") from e

        logger.info("order_persisted", order_id=created.order_id, user_id=created.user_id,
                    item_count=len(items), total_amount=created.total_amount)
        return created

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        return await OrderRepository.get_order(db, order_id)

    @staticmethod
    async def update_status(db: AsyncSession, order_id: int, expected: int, new: int):
        """
        Conditional transition. Returns ``(updated, current_status)`` or
        ``None`` when the order does not exist.
        """
        for value in (expected, new):
            if value not in OrderStatus._value2member_map_:
                raise InvalidStatus(f"unknown order status {value}")

        updated = await OrderRepository.compare_and_set_status(db, order_id, expected, new)
        current = await OrderRepository.get_status(db, order_id)
        if current is None:
            return None
        if updated:
            logger.info("order_status_changed", order_id=order_id, old=expected, new=new)
        return updated, current
