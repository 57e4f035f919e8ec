import logging
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from config.database import AsyncSession, get_async_db
from config.plans import DEFAULT_INTEGRATIONS
from models.profile import Profile, ROLE_SUPER_ADMIN
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role
from accounts import ensure_user_settings, get_platform_settings
from serializers import user_settings_out, platform_settings_out
from utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)


class UserSettingsUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    company_name: Optional[str] = None
    clearing_days: Optional[int] = Field(default=None, ge=0, le=365)
    notifications: Optional[dict] = None


class IntegrationUpdate(BaseModel):
    status: Literal["Connected", "Disconnected"]


class PlatformSettingsUpdate(BaseModel):
    announcement_text: Optional[str] = None
    announcement_enabled: Optional[bool] = None


@router.get("/user")
async def get_user_settings(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    settings = await ensure_user_settings(db, profile)
    await db.commit()
    return user_settings_out(settings)


@router.put("/user")
async def update_user_settings(body: UserSettingsUpdate, profile: Profile = Depends(get_current_profile),
                               db: AsyncSession = Depends(get_async_db)):
    settings = await ensure_user_settings(db, profile)
    changes = body.model_dump(exclude_unset=True)
    if "notifications" in changes:
        changes["notifications"] = {**(settings.notifications or {}), **(changes["notifications"] or {})}
    for field, value in changes.items():
        setattr(settings, field, value)
    await db.commit()
    return user_settings_out(settings)


@router.post("/user/integrations/{name}")
async def set_integration(name: str, body: IntegrationUpdate, profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    if name not in DEFAULT_INTEGRATIONS:
        raise HTTPException(status_code=404, detail=f"Unknown integration '{name}'")
    settings = await ensure_user_settings(db, profile)
    # Reassign so the JSON column sees the change
    settings.integrations = {**(settings.integrations or {}), name: body.status}
    await db.commit()
    logger.info("Integration %s for %s is now %s", name, profile.id, body.status)
    return user_settings_out(settings)


@router.get("/platform")
async def get_platform(db: AsyncSession = Depends(get_async_db)):
    return platform_settings_out(await get_platform_settings(db))


@router.put("/platform")
async def update_platform(body: PlatformSettingsUpdate, profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_SUPER_ADMIN)
    settings = await get_platform_settings(db)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(settings, field, value)
    settings.updated_at = utcnow()
    await db.commit()
    logger.info("Platform announcement updated by %s", profile.id)
    return platform_settings_out(settings)
