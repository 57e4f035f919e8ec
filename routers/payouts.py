import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ROLE_CREATOR, ROLE_SUPER_ADMIN
from models.payout import Payout, PayoutStatusEnum
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role, acting_role
from accounts import ensure_user_settings
from jobs import generate_payouts
from serializers import payout_out

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)


async def _get_payout(db: AsyncSession, payout_id: int) -> Payout:
    result = await db.execute(select(Payout).where(Payout.id == payout_id))
    payout = result.scalars().first()
    if payout is None:
        raise HTTPException(status_code=404, detail="Payout not found")
    return payout


@router.get("/")
async def list_payouts(view: Optional[str] = Query(default=None), profile: Profile = Depends(get_current_profile),
                       db: AsyncSession = Depends(get_async_db)):
    role = acting_role(profile, view)
    query = select(Payout).order_by(Payout.due_date.desc(), Payout.id.desc())
    if role == ROLE_CREATOR:
        query = query.where(Payout.creator_id == profile.id)
    elif role != ROLE_SUPER_ADMIN:
        query = query.where(Payout.user_id == profile.id)
    result = await db.execute(query)
    return [payout_out(p) for p in result.scalars().all()]


@router.post("/mass")
async def mass_payout(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    """Schedule every due payout of the creator through the connected Stripe account."""
    require_role(profile, ROLE_CREATOR)
    settings = await ensure_user_settings(db, profile)
    if (settings.integrations or {}).get("stripe") != "Connected":
        raise HTTPException(status_code=409, detail="Connect Stripe before running a mass payout")

    result = await db.execute(
        select(Payout).where(Payout.creator_id == profile.id, Payout.status == PayoutStatusEnum.Due)
    )
    due = result.scalars().all()
    if not due:
        raise HTTPException(status_code=400, detail="There are no due payouts to process")

    try:
        for payout in due:
            payout.status = PayoutStatusEnum.Scheduled
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Mass payout failed for creator %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error processing payouts: {e}")

    total = round(sum(p.amount for p in due), 2)
    logger.info("Creator %s scheduled %s payouts totalling %s", profile.id, len(due), total)
    return {
        "message": f"Processing {len(due)} payouts totalling ${total:,.2f}.",
        "scheduled": len(due),
        "total": total,
        "payouts": [payout_out(p) for p in due],
    }


@router.post("/generate")
async def generate_creator_payouts(profile: Profile = Depends(get_current_profile),
                                   db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    try:
        payouts = await generate_payouts(db, creator_id=profile.id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Payout generation failed for creator %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error generating payouts: {e}")
    return {"generated": len(payouts), "payouts": [payout_out(p) for p in payouts]}


@router.get("/{payout_id}")
async def get_payout(payout_id: int, profile: Profile = Depends(get_current_profile),
                     db: AsyncSession = Depends(get_async_db)):
    payout = await _get_payout(db, payout_id)
    if profile.id not in (payout.user_id, payout.creator_id) and not profile.has_role(ROLE_SUPER_ADMIN):
        raise HTTPException(status_code=404, detail="Payout not found")
    return payout_out(payout)


@router.put("/{payout_id}/paid")
async def mark_payout_paid(payout_id: int, profile: Profile = Depends(get_current_profile),
                           db: AsyncSession = Depends(get_async_db)):
    payout = await _get_payout(db, payout_id)
    if payout.creator_id != profile.id and not profile.has_role(ROLE_SUPER_ADMIN):
        raise HTTPException(status_code=403, detail="Only the paying creator can settle this payout")
    if payout.status == PayoutStatusEnum.Paid:
        raise HTTPException(status_code=409, detail="This payout has already been paid")
    payout.status = PayoutStatusEnum.Paid
    await db.commit()
    logger.info("Payout %s marked as paid", payout.id)
    return payout_out(payout)
