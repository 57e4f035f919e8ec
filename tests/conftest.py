import os

# Settings are read at import time, so the environment is prepared first
os.environ["DATABASE_URL_ASYNC"] = "sqlite+aiosqlite:///./test_partnerflow.db"
os.environ["JWT_SECRET_KEY"] = "test-access-secret"
os.environ["REFRESH_JWT_KEY"] = "test-refresh-secret"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["PROFILE_POLL_ATTEMPTS"] = "3"
os.environ["PROFILE_POLL_INTERVAL"] = "0"
os.environ["SUPER_ADMIN_EMAILS"] = "root@partnerflow.test"

import uuid
import pytest
from httpx import AsyncClient, ASGITransport

from main import app
from config.database import Base, engine_async, AsyncSessionLocal
from config.plans import DEFAULT_PLAN
from accounts import new_profile, assign_referral_code, ensure_user_settings
from models.authUser import AuthUser
from models.profile import BillingCycleEnum, ROLE_CREATOR, ROLE_AFFILIATE, ROLE_SUPER_ADMIN
from models.partnership import Partnership, PartnershipStatusEnum
from models.product import Product
from utils import get_hashed_password, write_token, token_payload, utctoday

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
async def database():
    async with engine_async.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_async.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Each test runs on its own event loop
    await engine_async.dispose()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


async def create_user(email, name="Test User", roles=(ROLE_CREATOR,), plan=DEFAULT_PLAN,
                      billing_cycle=None, integrations=None, **fields):
    async with AsyncSessionLocal() as session:
        profile = new_profile(uuid.uuid4(), name, email, list(roles))
        if ROLE_CREATOR in roles:
            profile.current_plan = plan
            profile.billing_cycle = BillingCycleEnum(billing_cycle) if billing_cycle else None
        for field, value in fields.items():
            setattr(profile, field, value)
        await assign_referral_code(session, profile)
        session.add(profile)
        session.add(AuthUser(id=profile.id, email=email, password=get_hashed_password(PASSWORD)))
        await session.flush()
        settings = await ensure_user_settings(session, profile)
        if integrations:
            settings.integrations = {**settings.integrations, **integrations}
        await session.commit()
        return profile


async def fetch_all(query):
    # A fresh session so rows reflect what the request committed
    async with AsyncSessionLocal() as session:
        result = await session.execute(query)
        return result.scalars().all()


async def fetch_one(query):
    rows = await fetch_all(query)
    return rows[0] if rows else None


def auth_headers(profile):
    return {"Authorization": f"Bearer {write_token(token_payload(profile))}"}


async def create_product(creator, name="Course", price=100.0, tiers=None, bonuses=None, **fields):
    async with AsyncSessionLocal() as session:
        product = Product(
            user_id=creator.id,
            name=name,
            price=price,
            sales_page_url=f"https://example.com/{name.lower()}",
            sales_count=0,
            clicks=0,
            commission_tiers=tiers if tiers is not None else [{"threshold": 0, "rate": 20}],
            bonuses=bonuses or [],
            creation_date=utctoday(),
            **fields,
        )
        session.add(product)
        await session.commit()
        return product


async def create_partnership(creator, affiliate, status=PartnershipStatusEnum.Active):
    async with AsyncSessionLocal() as session:
        partnership = Partnership(creator_id=creator.id, affiliate_id=affiliate.id, status=status)
        session.add(partnership)
        await session.commit()
        return partnership


@pytest.fixture
async def creator():
    return await create_user("creator@example.com", name="Casey Creator", company_name="Casey Co")


@pytest.fixture
async def growth_creator():
    return await create_user("growth@example.com", name="Grace Growth", plan="Growth Plan", billing_cycle="monthly")


@pytest.fixture
async def affiliate():
    return await create_user("affiliate@example.com", name="Elena Rodriguez", roles=(ROLE_AFFILIATE,),
                             coupon_code="ELENA10")


@pytest.fixture
async def admin():
    return await create_user("admin@example.com", name="Ada Admin", roles=(ROLE_SUPER_ADMIN,))
