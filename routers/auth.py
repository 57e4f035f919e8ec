import logging
import uuid
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import update
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from config.settings import REFRESH_TOKEN_EXPIRE_DAYS
from models.authUser import AuthUser
from models.profile import ProfileStatusEnum, ROLE_AFFILIATE, ROLE_CREATOR
from models.partnership import Partnership, PartnershipStatusEnum
from middlewares.verify_token_routes import read_bearer_token
from accounts import (
    assign_referral_code,
    find_profile_by_email,
    get_profile,
    get_platform_settings,
    merge_roles,
    new_profile,
    provision_profile_task,
    wait_for_profile,
    check_affiliate_limit,
)
from serializers import profile_out, platform_settings_out
from utils import (
    get_hashed_password,
    verify_password,
    write_token,
    write_refresh_token,
    validate_refresh_token,
    token_payload,
    utcnow,
)
from websocket_manager import notify_auth_event

logger = logging.getLogger(__name__)

router = APIRouter()


class SignupCredentials(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    company_name: str = ""


class LoginCredentials(BaseModel):
    email: EmailStr
    password: str


class AffiliateSignup(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: Optional[str] = Field(default=None, min_length=6)


def _set_refresh_cookie(response: Response, token: str):
    response.set_cookie(
        key="refresh_token",
        value=token,
        httponly=True,  # Prevent JavaScript access
        secure=True,  # Use HTTPS only
        samesite="none",  # Control cross-site behavior
        max_age=REFRESH_TOKEN_EXPIRE_DAYS * 86400,
    )


@router.post("/signup", status_code=201)
async def signup(credentials: SignupCredentials, background_tasks: BackgroundTasks,
                 db: AsyncSession = Depends(get_async_db)):
    email = credentials.email.lower()
    try:
        result = await db.execute(select(AuthUser).where(AuthUser.email == email))
        if result.scalars().first():
            raise HTTPException(status_code=409, detail="This email is already registered")

        # An invited affiliate signing up keeps the id of the profile created for the invite
        existing = await find_profile_by_email(db, email)
        user_id = existing.id if existing else uuid.uuid4()

        db.add(AuthUser(id=user_id, email=email, password=get_hashed_password(credentials.password)))
        await db.commit()
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Signup failed for %s", email)
        raise HTTPException(status_code=500, detail=f"There was an error signing you up: {e}")

    background_tasks.add_task(
        provision_profile_task, user_id, credentials.name, email, credentials.company_name
    )
    logger.info("Account created for %s", email)
    return {"message": "User Created", "user_id": str(user_id)}


@router.post("/login")
async def login(credentials: LoginCredentials, db: AsyncSession = Depends(get_async_db)):
    email = credentials.email.lower()
    result = await db.execute(select(AuthUser).where(AuthUser.email == email))
    auth_user = result.scalars().first()
    if not auth_user or not verify_password(credentials.password, auth_user.password):
        logger.warning("Failed login for %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    profile = await wait_for_profile(db, auth_user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    if profile.status == ProfileStatusEnum.Suspended:
        raise HTTPException(status_code=403, detail="User suspended")

    minimal_data = token_payload(profile)
    access_token = write_token(minimal_data)
    refresh_token = write_refresh_token(minimal_data)

    try:
        await db.execute(
            update(AuthUser)
            .where(AuthUser.id == auth_user.id)
            .values(refresh_token=refresh_token, last_sign_in_at=utcnow())
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Could not store refresh token for %s", email)
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    await notify_auth_event(profile.id, "SIGNED_IN", user_id=str(profile.id))

    response = JSONResponse(
        content={
            "message": "logged",
            "user_data": profile_out(profile),
            "access_token": access_token,
        },
        status_code=200,
    )
    _set_refresh_cookie(response, refresh_token)
    return response


@router.get("/refresh")
async def refresh(req: Request, db: AsyncSession = Depends(get_async_db)):
    # Get the refresh token from cookies
    refresh_token = req.cookies.get("refresh_token")
    if not refresh_token:
        raise HTTPException(status_code=400, detail="No refresh token found in cookies")

    result = await db.execute(select(AuthUser).where(AuthUser.refresh_token == refresh_token))
    auth_user = result.scalars().first()
    if not auth_user:
        raise HTTPException(status_code=404, detail="No user is associated with this refresh token")

    validate_refresh_token(refresh_token)

    # Claims are rebuilt from the profile so role changes reach the new access token
    profile = await get_profile(db, auth_user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    if profile.status == ProfileStatusEnum.Suspended:
        raise HTTPException(status_code=403, detail="User suspended")

    return {"access_token": write_token(token_payload(profile))}


@router.get("/logout")
async def logout(req: Request, db: AsyncSession = Depends(get_async_db)):
    cookie = req.cookies.get("refresh_token")
    response = Response(status_code=204)
    if not cookie:
        return response

    result = await db.execute(select(AuthUser).where(AuthUser.refresh_token == cookie))
    auth_user = result.scalars().first()
    if auth_user:
        auth_user.refresh_token = None
        await db.commit()
        await notify_auth_event(auth_user.id, "SIGNED_OUT", user_id=str(auth_user.id))

    response.delete_cookie("refresh_token", httponly=True, secure=True, samesite="none")
    return response


@router.get("/session")
async def session(request: Request, db: AsyncSession = Depends(get_async_db)):
    """Current user after sign-in; waits for a profile that is still being provisioned."""
    claims = read_bearer_token(request)
    profile = await wait_for_profile(db, claims["user_id"])
    if profile is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    if profile.status == ProfileStatusEnum.Suspended:
        raise HTTPException(status_code=403, detail="User suspended")

    platform = await get_platform_settings(db)
    return {"user": profile_out(profile), "platform": platform_settings_out(platform)}


@router.post("/affiliate-signup", status_code=201)
async def affiliate_signup(body: AffiliateSignup, ref: str = Query(..., description="Creator id from the signup link"),
                           db: AsyncSession = Depends(get_async_db)):
    creator = await get_profile(db, ref)
    if creator is None or not creator.has_role(ROLE_CREATOR):
        raise HTTPException(status_code=404, detail="Invalid signup link.")

    email = body.email.lower()
    try:
        affiliate = await find_profile_by_email(db, email)
        if affiliate is None:
            affiliate = new_profile(uuid.uuid4(), body.name, email, [ROLE_AFFILIATE], status=ProfileStatusEnum.Pending)
            await assign_referral_code(db, affiliate)
            db.add(affiliate)
            await db.flush()
        else:
            affiliate.roles = merge_roles(affiliate.roles, ROLE_AFFILIATE)

        if affiliate.id == creator.id:
            raise HTTPException(status_code=400, detail="You cannot join your own program")

        result = await db.execute(
            select(Partnership).where(Partnership.creator_id == creator.id, Partnership.affiliate_id == affiliate.id)
        )
        if result.scalars().first():
            raise HTTPException(status_code=409, detail="You have already applied to this program")
        await check_affiliate_limit(db, creator)

        db.add(Partnership(creator_id=creator.id, affiliate_id=affiliate.id, status=PartnershipStatusEnum.Pending))

        if body.password:
            result = await db.execute(select(AuthUser).where(AuthUser.email == email))
            if result.scalars().first() is None:
                db.add(AuthUser(id=affiliate.id, email=email, password=get_hashed_password(body.password)))

        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Affiliate signup failed for %s", email)
        raise HTTPException(status_code=500, detail=f"Error submitting application: {e}")

    logger.info("Affiliate %s applied to creator %s", affiliate.id, creator.id)
    return {"message": "Application submitted! It is now pending approval.", "affiliate": profile_out(affiliate)}
