from sqlalchemy import Column, BigInteger, Integer, String
from shared.config.database import Base

class Sku(Base):
    __tablename__ = "skus"
    __table_args__ = {"schema": "inventory_schema"}

    variant_id = Column(BigInteger, primary_key=True, autoincrement=False)
    product_id = Column(BigInteger, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    image_url = Column(String(512), nullable=True)
    unit_price = Column(BigInteger, nullable=False) # minor currency units
    stock = Column(Integer, nullable=False, default=0)
