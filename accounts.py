"""Profile provisioning, plan changes and per-user defaults shared by several routers."""
import asyncio
import logging
import uuid
from datetime import timedelta
from fastapi import HTTPException
from sqlalchemy import case, func, update
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, AsyncSessionLocal
from config.plans import (
    DEFAULT_PLAN,
    DEFAULT_CLEARING_DAYS,
    DEFAULT_INTEGRATIONS,
    DEFAULT_USER_NOTIFICATIONS,
    DEFAULT_ANNOUNCEMENT,
    PLAN_DETAILS,
    get_plan,
)
from config.settings import TRIAL_DAYS, SUPER_ADMIN_EMAILS, PROFILE_POLL_ATTEMPTS, PROFILE_POLL_INTERVAL
from models.profile import Profile, ProfileStatusEnum, BillingCycleEnum, ROLE_CREATOR, ROLE_SUPER_ADMIN
from models.partnership import Partnership
from models.product import Product
from models.payment import Payment
from models.userSettings import UserSettings
from models.platformSettings import PlatformSettings
from utils import utcnow, avatar_url, generate_code, referral_code_from_name

logger = logging.getLogger(__name__)


def merge_roles(current, *extra) -> list[str]:
    roles = list(current or [])
    for role in extra:
        if role not in roles:
            roles.append(role)
    return roles


async def find_profile_by_email(db: AsyncSession, email: str) -> Profile | None:
    result = await db.execute(select(Profile).where(func.lower(Profile.email) == email.lower()))
    return result.scalars().first()


async def get_profile(db: AsyncSession, profile_id) -> Profile | None:
    if isinstance(profile_id, str):
        try:
            profile_id = uuid.UUID(profile_id)
        except ValueError:
            return None
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalars().first()


async def ensure_user_settings(db: AsyncSession, profile: Profile) -> UserSettings:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == profile.id))
    settings = result.scalars().first()
    if settings is None:
        settings = UserSettings(
            user_id=profile.id,
            name=profile.name,
            email=profile.email,
            company_name=profile.company_name or "",
            clearing_days=DEFAULT_CLEARING_DAYS,
            notifications=dict(DEFAULT_USER_NOTIFICATIONS),
            integrations=dict(DEFAULT_INTEGRATIONS),
        )
        db.add(settings)
        await db.flush()
    return settings


async def get_platform_settings(db: AsyncSession) -> PlatformSettings:
    result = await db.execute(select(PlatformSettings).where(PlatformSettings.id == 1))
    settings = result.scalars().first()
    if settings is None:
        settings = PlatformSettings(id=1, announcement_text=DEFAULT_ANNOUNCEMENT, announcement_enabled=False)
        db.add(settings)
        await db.commit()
    return settings


def new_profile(user_id, name: str, email: str, roles, status=ProfileStatusEnum.Active, company_name: str = "") -> Profile:
    return Profile(
        id=user_id,
        name=name or email,
        email=email,
        avatar=avatar_url(email),
        roles=list(roles),
        status=status,
        company_name=company_name or "",
        join_date=utcnow().date(),
        referral_code=referral_code_from_name(name or email.split("@")[0]),
        sales=0,
        commission=0.0,
        clicks=0,
        notifications={},
    )


async def assign_referral_code(db: AsyncSession, profile: Profile):
    """Suffix the profile's referral code until no other profile holds it."""
    base = profile.referral_code
    code = base
    while True:
        result = await db.execute(
            select(Profile.id).where(Profile.referral_code == code, Profile.id != profile.id)
        )
        if result.first() is None:
            break
        code = f"{base}-{generate_code(4).lower()}"
    profile.referral_code = code


async def adjust_affiliate_totals(db: AsyncSession, affiliate_id, sales: int = 0, commission: float = 0.0):
    """Shift an affiliate's sale and commission counters in one UPDATE, never below zero."""
    new_sales = func.coalesce(Profile.sales, 0) + sales
    new_commission = func.coalesce(Profile.commission, 0.0) + round(commission, 2)
    await db.execute(
        update(Profile)
        .where(Profile.id == affiliate_id)
        .values(
            sales=case((new_sales < 0, 0), else_=new_sales),
            commission=case((new_commission < 0, 0.0), else_=new_commission),
        )
        .execution_options(synchronize_session=False)
    )


def start_creator_trial(profile: Profile):
    profile.current_plan = profile.current_plan or DEFAULT_PLAN
    profile.trial_ends_at = utcnow() + timedelta(days=TRIAL_DAYS)


async def provision_profile(db: AsyncSession, user_id, name: str, email: str, company_name: str = "") -> Profile:
    """Create or complete the creator profile behind a freshly signed-up account."""
    profile = await get_profile(db, user_id)
    if profile is None:
        profile = new_profile(user_id, name, email, [ROLE_CREATOR], company_name=company_name)
        await assign_referral_code(db, profile)
        start_creator_trial(profile)
        db.add(profile)
    else:
        if not profile.has_role(ROLE_CREATOR):
            profile.roles = merge_roles(profile.roles, ROLE_CREATOR)
            start_creator_trial(profile)
        profile.name = name or profile.name
        profile.company_name = company_name or profile.company_name
        if profile.status == ProfileStatusEnum.Pending:
            profile.status = ProfileStatusEnum.Active

    if email.lower() in SUPER_ADMIN_EMAILS and not profile.has_role(ROLE_SUPER_ADMIN):
        profile.roles = merge_roles(profile.roles, ROLE_SUPER_ADMIN)
        logger.info("Granted super admin to %s", email)

    await db.flush()
    await ensure_user_settings(db, profile)
    await db.commit()
    logger.info("Provisioned profile %s for %s", profile.id, email)
    return profile


async def provision_profile_task(user_id, name: str, email: str, company_name: str = ""):
    """Background entry point run after signup returns."""
    async with AsyncSessionLocal() as db:
        try:
            await provision_profile(db, user_id, name, email, company_name)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Profile provisioning failed for %s", email)


async def wait_for_profile(db: AsyncSession, user_id, attempts: int | None = None, interval: float | None = None):
    """Poll until the provisioned profile shows up, or give up with None."""
    attempts = PROFILE_POLL_ATTEMPTS if attempts is None else attempts
    interval = PROFILE_POLL_INTERVAL if interval is None else interval
    for attempt in range(attempts):
        profile = await get_profile(db, user_id)
        if profile is not None:
            return profile
        if attempt < attempts - 1:
            await asyncio.sleep(interval)
    logger.warning("Profile %s not found after %s attempts", user_id, attempts)
    return None


async def apply_plan_change(db: AsyncSession, profile: Profile, plan_name: str, billing_cycle: str) -> Payment:
    """Subscribe a profile to a plan: creator role, no trial, one payment row."""
    if plan_name not in PLAN_DETAILS:
        raise HTTPException(status_code=400, detail=f"Unknown plan '{plan_name}'")
    try:
        cycle = BillingCycleEnum(billing_cycle)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown billing cycle '{billing_cycle}'")

    plan = get_plan(plan_name)
    profile.current_plan = plan_name
    profile.billing_cycle = cycle
    profile.trial_ends_at = None
    profile.roles = merge_roles(profile.roles, ROLE_CREATOR)

    payment = Payment(
        user_id=profile.id,
        amount=plan["annualPrice"] if cycle == BillingCycleEnum.annual else plan["price"],
        date=utcnow().date(),
        plan=plan_name,
        billing_cycle=cycle.value,
    )
    db.add(payment)
    await ensure_user_settings(db, profile)
    logger.info("Profile %s moved to %s (%s)", profile.id, plan_name, cycle.value)
    return payment


async def count_products(db: AsyncSession, creator_id) -> int:
    result = await db.execute(select(func.count(Product.id)).where(Product.user_id == creator_id))
    return result.scalar() or 0


async def count_partnerships(db: AsyncSession, creator_id) -> int:
    result = await db.execute(select(func.count(Partnership.id)).where(Partnership.creator_id == creator_id))
    return result.scalar() or 0


async def check_affiliate_limit(db: AsyncSession, creator: Profile):
    plan = get_plan(creator.current_plan)
    limit = plan["limits"]["affiliates"]
    if await count_partnerships(db, creator.id) >= limit:
        logger.warning("Affiliate limit reached for creator %s", creator.id)
        raise HTTPException(
            status_code=403,
            detail=f"Affiliate limit reached for the {plan['name']} ({limit}). Upgrade to add more.",
        )
