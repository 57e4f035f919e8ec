import enum
from config.database import Base
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from utils import utcnow, utctoday


class SaleStatusEnum(enum.Enum):
    Pending = "Pending"
    Cleared = "Cleared"
    Refunded = "Refunded"


class Sale(Base):
    __tablename__ = "sales"
    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_name = Column(String, default="")  # Denormalized for payout statements
    affiliate_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    creator_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    sale_amount = Column(Float, nullable=False)
    commission_amount = Column(Float, default=0.0)
    bonus_amount = Column(Float, default=0.0)
    date = Column(Date, default=utctoday)
    status = Column(Enum(SaleStatusEnum), default=SaleStatusEnum.Pending, nullable=False)
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    payout = relationship("Payout", back_populates="sales")
