from config.database import Base
from sqlalchemy import Column, Integer, String, JSON, ForeignKey, Uuid


class UserSettings(Base):
    __tablename__ = "user_settings"
    user_id = Column(Uuid, ForeignKey("profiles.id"), primary_key=True)
    name = Column(String, default="")
    email = Column(String, default="")
    company_name = Column(String, default="")
    clearing_days = Column(Integer, default=30)  # Days before a pending sale clears
    notifications = Column(JSON, default=dict)
    integrations = Column(JSON, default=dict)  # {"stripe": "Connected" | "Disconnected", ...}
