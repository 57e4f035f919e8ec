import enum
from config.database import Base
from sqlalchemy import Column, Integer, String, Text, Date, Enum, ForeignKey, JSON, Uuid
from utils import utctoday


class ResourceTypeEnum(enum.Enum):
    image = "Image"
    pdf_guide = "PDF Guide"
    video_link = "Video Link"
    email_swipe = "Email Swipe"


class Resource(Base):
    """Promotional material a creator shares with affiliates."""
    __tablename__ = "resources"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    type = Column(Enum(ResourceTypeEnum, values_callable=lambda e: [m.value for m in e]), nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, default="")
    content = Column(Text, default="")  # URL for Image/PDF/Video, text for Email
    thumbnail_url = Column(String, nullable=True)
    product_ids = Column(JSON, default=list)
    creation_date = Column(Date, default=utctoday)
