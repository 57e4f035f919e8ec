import enum
from config.database import Base
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, Uuid
from utils import utcnow


class RecipientsEnum(enum.Enum):
    All = "All"
    Active = "Active"
    Pending = "Pending"


class Communication(Base):
    __tablename__ = "communications"
    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    recipients = Column(Enum(RecipientsEnum), default=RecipientsEnum.All, nullable=False)
    date = Column(DateTime, default=utcnow)
