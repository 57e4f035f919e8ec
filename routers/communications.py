import logging
from typing import Literal
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ROLE_CREATOR, ROLE_AFFILIATE
from models.partnership import Partnership
from models.communication import Communication, RecipientsEnum
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role
from serializers import communication_out

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)


class CommunicationCreate(BaseModel):
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    recipients: Literal["All", "Active", "Pending"] = "All"


@router.get("/")
async def list_sent(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    result = await db.execute(
        select(Communication).where(Communication.sender_id == profile.id).order_by(Communication.date.desc())
    )
    return [communication_out(c) for c in result.scalars().all()]


@router.post("/", status_code=201)
async def send_communication(body: CommunicationCreate, profile: Profile = Depends(get_current_profile),
                             db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    communication = Communication(
        sender_id=profile.id,
        subject=body.subject,
        message=body.message,
        recipients=RecipientsEnum(body.recipients),
    )
    try:
        db.add(communication)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Sending communication failed for %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error sending message: {e}")

    logger.info("Creator %s messaged %s affiliates", profile.id, body.recipients)
    return communication_out(communication)


@router.get("/inbox")
async def inbox(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    """Messages addressed to the affiliate by the creators it partners with."""
    require_role(profile, ROLE_AFFILIATE)
    result = await db.execute(select(Partnership).where(Partnership.affiliate_id == profile.id))
    status_by_creator = {p.creator_id: p.status.value for p in result.scalars().all()}
    if not status_by_creator:
        return []

    result = await db.execute(
        select(Communication)
        .where(Communication.sender_id.in_(list(status_by_creator)))
        .order_by(Communication.date.desc())
    )
    messages = []
    for communication in result.scalars().all():
        audience = communication.recipients.value
        if audience == "All" or audience == status_by_creator[communication.sender_id]:
            messages.append(communication_out(communication))
    return messages
