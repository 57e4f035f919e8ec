import uuid
import enum
from config.database import Base
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, JSON, Uuid
from utils import utcnow, utctoday


class ProfileStatusEnum(enum.Enum):
    Active = "Active"
    Suspended = "Suspended"
    Pending = "Pending"
    Inactive = "Inactive"


class BillingCycleEnum(enum.Enum):
    monthly = "monthly"
    annual = "annual"


ROLE_CREATOR = "creator"
ROLE_AFFILIATE = "affiliate"
ROLE_SUPER_ADMIN = "super_admin"
ROLES = (ROLE_CREATOR, ROLE_AFFILIATE, ROLE_SUPER_ADMIN)


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, default="")
    email = Column(String, nullable=False, index=True)
    avatar = Column(String, default="")
    roles = Column(JSON, default=list)  # ["creator", "affiliate", "super_admin"]
    current_plan = Column(String, nullable=True)
    billing_cycle = Column(Enum(BillingCycleEnum), nullable=True)
    status = Column(Enum(ProfileStatusEnum), default=ProfileStatusEnum.Active, nullable=False)
    join_date = Column(Date, default=utctoday)
    trial_ends_at = Column(DateTime, nullable=True)
    onboarding_step_completed = Column(Integer, default=0)  # 5 = complete
    company_name = Column(String, default="")

    # Affiliate counters
    sales = Column(Integer, default=0)
    commission = Column(Float, default=0.0)
    clicks = Column(Integer, default=0)
    referral_code = Column(String, nullable=True, unique=True, index=True)
    coupon_code = Column(String, nullable=True)
    paypal_email = Column(String, nullable=True)
    notifications = Column(JSON, default=dict)
    created_at = Column(DateTime, default=utcnow)

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])
