from config.database import Base
from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, ForeignKey, JSON, Text, Uuid
from utils import utcnow, utctoday


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)  # Owner creator
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    sales_page_url = Column(String, default="")
    sales_count = Column(Integer, default=0)
    clicks = Column(Integer, default=0)
    commission_tiers = Column(JSON, default=list)  # [{"threshold": 0, "rate": 20}]
    bonuses = Column(JSON, default=list)  # [{"goal": 20, "reward": 250, "type": "sales"}]
    creation_date = Column(Date, default=utctoday)
    is_publicly_listed = Column(Boolean, default=False)
    description = Column(Text, default="")
    created_at = Column(DateTime, default=utcnow)
