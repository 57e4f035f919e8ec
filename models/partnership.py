import uuid
import enum
from sqlalchemy import Column, ForeignKey, DateTime, Enum, UniqueConstraint, Uuid
from utils import utcnow
from config.database import Base


class PartnershipStatusEnum(enum.Enum):
    Active = "Active"
    Pending = "Pending"
    Inactive = "Inactive"


class Partnership(Base):
    __tablename__ = "partnerships"
    __table_args__ = (UniqueConstraint("creator_id", "affiliate_id", name="uq_partnership_pair"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    creator_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    affiliate_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    status = Column(Enum(PartnershipStatusEnum), default=PartnershipStatusEnum.Pending, nullable=False)
    created_at = Column(DateTime, default=utcnow)
