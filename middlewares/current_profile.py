import uuid
from fastapi import Depends, HTTPException, Request
from sqlalchemy.future import select
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ProfileStatusEnum, ROLE_SUPER_ADMIN, ROLE_CREATOR, ROLE_AFFILIATE


async def get_current_profile(request: Request, db: AsyncSession = Depends(get_async_db)) -> Profile:
    """Profile of the caller, for routers guarded by the token route classes."""
    claims = getattr(request.state, "user", None)
    if not claims:
        raise HTTPException(status_code=401, detail="Not authenticated")

    result = await db.execute(select(Profile).where(Profile.id == uuid.UUID(claims["user_id"])))
    profile = result.scalars().first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    if profile.status == ProfileStatusEnum.Suspended:
        raise HTTPException(status_code=403, detail="Account suspended")
    return profile


def require_role(profile: Profile, role: str):
    if not profile.has_role(role):
        raise HTTPException(status_code=403, detail=f"Access denied: Required role '{role}'")


def acting_role(profile: Profile, view: str | None = None) -> str:
    """Role the request acts under: super_admin, then creator, then affiliate.

    A user holding several roles can ask for one of them with `view`.
    """
    if view:
        if not profile.has_role(view):
            raise HTTPException(status_code=403, detail=f"Access denied: Required role '{view}'")
        return view
    for role in (ROLE_SUPER_ADMIN, ROLE_CREATOR, ROLE_AFFILIATE):
        if profile.has_role(role):
            return role
    raise HTTPException(status_code=403, detail="Access denied: no role assigned")
