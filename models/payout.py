import enum
from config.database import Base
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from utils import utcnow


class PayoutStatusEnum(enum.Enum):
    Due = "Due"
    Paid = "Paid"
    Scheduled = "Scheduled"


class Payout(Base):
    __tablename__ = "payouts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)  # The affiliate
    creator_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    affiliate_name = Column(String, default="")
    affiliate_avatar = Column(String, default="")
    amount = Column(Float, default=0.0)
    period = Column(String, nullable=False)  # e.g. "Oct 2023"
    due_date = Column(Date, nullable=False)
    status = Column(Enum(PayoutStatusEnum), default=PayoutStatusEnum.Due, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    sales = relationship("Sale", back_populates="payout", lazy="selectin")
