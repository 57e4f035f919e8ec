import logging
import uuid
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy import delete, desc, or_
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from models.authUser import AuthUser
from models.profile import Profile, ProfileStatusEnum, ROLE_CREATOR
from models.partnership import Partnership
from models.product import Product
from models.sale import Sale
from models.payout import Payout
from models.payment import Payment
from models.communication import Communication
from models.resource import Resource
from models.userSettings import UserSettings
from models.affiliateClicks import AffiliateClicks
from middlewares.verify_token_admin import VerifyTokenAdmin
from accounts import apply_plan_change, get_profile
from serializers import profile_out, payment_out
from websocket_manager import notify_auth_event

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenAdmin)


class AdminPlanChange(BaseModel):
    plan: str
    billing_cycle: str = "monthly"


async def _target(db: AsyncSession, user_id: str) -> Profile:
    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid user ID format")
    profile = await get_profile(db, user_uuid)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.get("/clients")
async def list_clients(db: AsyncSession = Depends(get_async_db)):
    """Creators, each with the subscription payments they made."""
    result = await db.execute(select(Profile).order_by(desc(Profile.created_at)))
    clients = [p for p in result.scalars().all() if p.has_role(ROLE_CREATOR)]

    result = await db.execute(select(Payment).order_by(Payment.date))
    payments = {}
    for payment in result.scalars().all():
        payments.setdefault(payment.user_id, []).append(payment_out(payment))

    rows = []
    for client in clients:
        data = profile_out(client)
        data["payments"] = payments.get(client.id, [])
        rows.append(data)
    return rows


@router.get("/users")
async def list_users(offset: int = Query(0, ge=0), limit: int = Query(50, gt=0),
                     db: AsyncSession = Depends(get_async_db)):
    total = await db.execute(select(Profile.id))
    result = await db.execute(
        select(Profile).order_by(desc(Profile.created_at)).offset(offset).limit(limit)
    )
    return {
        "users": [profile_out(p) for p in result.scalars().all()],
        "total_users": len(total.all()),
    }


@router.put("/users/{user_id}/plan")
async def change_user_plan(user_id: str, body: AdminPlanChange, db: AsyncSession = Depends(get_async_db)):
    profile = await _target(db, user_id)
    try:
        await apply_plan_change(db, profile, body.plan, body.billing_cycle)
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Admin plan change failed for %s", user_id)
        raise HTTPException(status_code=500, detail=f"Error updating plan: {e}")

    await notify_auth_event(profile.id, "USER_UPDATED", user_id=str(profile.id))
    return profile_out(profile)


@router.put("/users/{user_id}/suspend")
async def suspend_user(user_id: str, request: Request, suspended: bool = Body(True, embed=True),
                       db: AsyncSession = Depends(get_async_db)):
    profile = await _target(db, user_id)
    if str(profile.id) == request.state.user["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot suspend your own account")

    profile.status = ProfileStatusEnum.Suspended if suspended else ProfileStatusEnum.Active
    if suspended:
        result = await db.execute(select(AuthUser).where(AuthUser.id == profile.id))
        auth_user = result.scalars().first()
        if auth_user:
            auth_user.refresh_token = None
    await db.commit()

    logger.warning("User %s %s", profile.id, "suspended" if suspended else "reactivated")
    await notify_auth_event(profile.id, "SIGNED_OUT" if suspended else "USER_UPDATED", user_id=str(profile.id))
    return profile_out(profile)


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, request: Request, db: AsyncSession = Depends(get_async_db)):
    """Remove a user and every row that references it."""
    profile = await _target(db, user_id)
    if str(profile.id) == request.state.user["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    uid = profile.id
    own_products = select(Product.id).where(Product.user_id == uid)
    try:
        await db.execute(delete(AffiliateClicks).where(
            or_(AffiliateClicks.affiliate_id == uid, AffiliateClicks.product_id.in_(own_products))
        ))
        await db.execute(delete(Sale).where(or_(Sale.affiliate_id == uid, Sale.creator_id == uid)))
        await db.execute(delete(Payout).where(or_(Payout.user_id == uid, Payout.creator_id == uid)))
        await db.execute(delete(Partnership).where(
            or_(Partnership.affiliate_id == uid, Partnership.creator_id == uid)
        ))
        await db.execute(delete(Resource).where(Resource.user_id == uid))
        await db.execute(delete(Communication).where(Communication.sender_id == uid))
        await db.execute(delete(Product).where(Product.user_id == uid))
        await db.execute(delete(Payment).where(Payment.user_id == uid))
        await db.execute(delete(UserSettings).where(UserSettings.user_id == uid))
        await db.execute(delete(AuthUser).where(AuthUser.id == uid))
        await db.execute(delete(Profile).where(Profile.id == uid))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Deleting user %s failed", uid)
        raise HTTPException(status_code=500, detail=f"Error deleting user: {e}")

    logger.warning("User %s deleted", uid)
    await notify_auth_event(uid, "SIGNED_OUT", user_id=str(uid))
    return {"message": "User deleted"}
