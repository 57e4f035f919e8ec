from sqlalchemy import Column, DateTime, String, Uuid
from config.database import Base
import uuid
from utils import utcnow


class AuthUser(Base):
    __tablename__ = "auth_users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)  # Same id as the profile
    email = Column(String, unique=True, nullable=False)
    password = Column(String, nullable=False)
    refresh_token = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    last_sign_in_at = Column(DateTime, nullable=True)
