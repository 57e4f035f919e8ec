from config.database import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from utils import utcnow


class PlatformSettings(Base):
    __tablename__ = "platform_settings"
    id = Column(Integer, primary_key=True, default=1)  # Single row
    announcement_text = Column(String, default="")
    announcement_enabled = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=utcnow)
