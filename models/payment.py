from config.database import Base
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, Uuid
from utils import utcnow, utctoday


class Payment(Base):
    """Platform subscription payment made by a creator."""
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(Date, default=utctoday)
    plan = Column(String, nullable=False)
    billing_cycle = Column(String, default="monthly")
    created_at = Column(DateTime, default=utcnow)
