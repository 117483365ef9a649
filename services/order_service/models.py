from sqlalchemy import Column, BigInteger, Integer, SmallInteger, String, JSON, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from shared.config.database import Base
from shared.contracts import OrderStatus


class Order(Base):
    __tablename__ = "orders"
    # Separate schema per service; no other service reads these tables
    __table_args__ = {"schema": "order_schema"}

    # Assigned by the orchestrator's snowflake generator, never by the database
    order_id = Column(BigInteger, primary_key=True, autoincrement=False)
    user_id = Column(BigInteger, nullable=False, index=True)
    # Minor currency units
    total_amount = Column(BigInteger, nullable=False)
    payment_amount = Column(BigInteger, nullable=False)
    shipping_fee = Column(BigInteger, nullable=False, default=0)
    status = Column(SmallInteger, nullable=False, default=int(OrderStatus.AWAITING_PAYMENT))
    shipping_address = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", lazy="selectin", order_by="OrderItem.variant_id")


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"schema": "order_schema"}

    order_id = Column(BigInteger, ForeignKey("order_schema.orders.order_id"), primary_key=True)
    variant_id = Column(BigInteger, primary_key=True)
    product_id = Column(BigInteger, nullable=False)
    # Display and price snapshot taken at order time
    title = Column(String(255), nullable=False)
    image_url = Column(String(512), nullable=True)
    unit_price = Column(BigInteger, nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(BigInteger, nullable=False)

    order = relationship("Order", back_populates="items")
