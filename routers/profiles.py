import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from config.plans import get_plan
from models.profile import Profile
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile
from accounts import apply_plan_change
from serializers import profile_out, payment_out
from websocket_manager import notify_auth_event

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    company_name: Optional[str] = None
    avatar: Optional[str] = None
    paypal_email: Optional[str] = None
    coupon_code: Optional[str] = None
    referral_code: Optional[str] = None
    notifications: Optional[dict] = None


class OnboardingStep(BaseModel):
    step: int = Field(ge=0, le=5)


class PlanChange(BaseModel):
    plan: str
    billing_cycle: str = "monthly"


async def _code_taken(db: AsyncSession, column, code: str, profile_id) -> bool:
    result = await db.execute(
        select(Profile.id).where(func.lower(column) == code.lower(), Profile.id != profile_id)
    )
    return result.first() is not None


@router.get("/me")
async def get_me(profile: Profile = Depends(get_current_profile)):
    data = profile_out(profile)
    data["plan"] = get_plan(profile.current_plan)
    return data


@router.put("/me")
async def update_me(body: ProfileUpdate, profile: Profile = Depends(get_current_profile),
                    db: AsyncSession = Depends(get_async_db)):
    changes = body.model_dump(exclude_unset=True)

    if changes.get("coupon_code"):
        changes["coupon_code"] = changes["coupon_code"].strip()
        if await _code_taken(db, Profile.coupon_code, changes["coupon_code"], profile.id):
            raise HTTPException(status_code=409, detail="This coupon code is already in use")
    if changes.get("referral_code"):
        if await _code_taken(db, Profile.referral_code, changes["referral_code"], profile.id):
            raise HTTPException(status_code=409, detail="This referral code is already in use")

    try:
        for field, value in changes.items():
            setattr(profile, field, value)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Profile update failed for %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error updating your profile: {e}")

    await notify_auth_event(profile.id, "USER_UPDATED", user_id=str(profile.id))
    return profile_out(profile)


@router.put("/me/onboarding")
async def update_onboarding(body: OnboardingStep, profile: Profile = Depends(get_current_profile),
                            db: AsyncSession = Depends(get_async_db)):
    profile.onboarding_step_completed = body.step
    await db.commit()
    return {"onboardingStepCompleted": profile.onboarding_step_completed}


@router.post("/me/plan")
async def change_plan(body: PlanChange, profile: Profile = Depends(get_current_profile),
                      db: AsyncSession = Depends(get_async_db)):
    try:
        payment = await apply_plan_change(db, profile, body.plan, body.billing_cycle)
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Plan change failed for %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error updating your plan: {e}")

    await notify_auth_event(profile.id, "USER_UPDATED", user_id=str(profile.id))
    return {
        "message": f"Successfully subscribed to the {body.plan} ({body.billing_cycle})!",
        "user": profile_out(profile),
        "payment": payment_out(payment),
    }
