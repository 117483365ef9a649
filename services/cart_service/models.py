from sqlalchemy import Column, BigInteger, Integer
from shared.config.database import Base

class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = {"schema": "cart_schema"}

    user_id = Column(BigInteger, primary_key=True)
    variant_id = Column(BigInteger, primary_key=True)
    quantity = Column(Integer, nullable=False, default=1)
