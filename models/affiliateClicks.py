from sqlalchemy import Column, ForeignKey, DateTime, Integer, String, Uuid
from config.database import Base
from utils import utcnow

class AffiliateClicks(Base):
    __tablename__ = "affiliate_clicks"
    id = Column(Integer, primary_key=True, autoincrement=True)
    affiliate_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)  # Affiliate who referred the visit
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    clicked_at = Column(DateTime,  default=utcnow)  # Date and time of the click
    ip_address = Column(String, nullable=True)  # Visitor IP (optional)
    user_agent = Column(String, nullable=True)  # Browser User-Agent (optional)
