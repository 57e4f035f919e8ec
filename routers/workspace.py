from collections import defaultdict
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.future import select
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ROLE_SUPER_ADMIN, ROLE_CREATOR
from models.partnership import Partnership
from models.product import Product
from models.sale import Sale, SaleStatusEnum
from models.affiliateClicks import AffiliateClicks
from models.payout import Payout
from models.payment import Payment
from models.resource import Resource
from models.communication import Communication
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, acting_role
from accounts import ensure_user_settings, get_platform_settings
from serializers import (
    profile_out,
    affiliate_out,
    product_out,
    payout_out,
    payment_out,
    resource_out,
    communication_out,
    user_settings_out,
    platform_settings_out,
)

router = APIRouter(route_class=VerifyTokenRoute)


async def _all(db: AsyncSession, query):
    result = await db.execute(query)
    return result.scalars().all()


async def creator_affiliates(db: AsyncSession, creator_id):
    """(profile, partnership) pairs for every affiliate partnered with a creator."""
    result = await db.execute(
        select(Profile, Partnership)
        .join(Partnership, Partnership.affiliate_id == Profile.id)
        .where(Partnership.creator_id == creator_id)
        .order_by(Partnership.created_at)
    )
    return result.all()


async def creator_affiliate_counters(db: AsyncSession, creator_id, affiliate_id=None) -> dict:
    """Sales, commission and clicks per affiliate, counted on one creator's products only."""
    counters = defaultdict(lambda: {"sales": 0, "commission": 0.0, "clicks": 0})

    sales_query = (
        select(Sale.affiliate_id, func.count(Sale.id),
               func.sum(Sale.commission_amount + func.coalesce(Sale.bonus_amount, 0.0)))
        .where(Sale.creator_id == creator_id, Sale.status != SaleStatusEnum.Refunded)
        .group_by(Sale.affiliate_id)
    )
    clicks_query = (
        select(AffiliateClicks.affiliate_id, func.count(AffiliateClicks.id))
        .join(Product, Product.id == AffiliateClicks.product_id)
        .where(Product.user_id == creator_id)
        .group_by(AffiliateClicks.affiliate_id)
    )
    if affiliate_id is not None:
        sales_query = sales_query.where(Sale.affiliate_id == affiliate_id)
        clicks_query = clicks_query.where(AffiliateClicks.affiliate_id == affiliate_id)

    for row_affiliate, sales, commission in (await db.execute(sales_query)).all():
        counters[row_affiliate]["sales"] = sales
        counters[row_affiliate]["commission"] = commission or 0.0
    for row_affiliate, clicks in (await db.execute(clicks_query)).all():
        counters[row_affiliate]["clicks"] = clicks
    return counters


async def scoped_affiliates(db: AsyncSession, creator_id) -> list[dict]:
    counters = await creator_affiliate_counters(db, creator_id)
    return [
        affiliate_out(profile, partnership, counters[profile.id])
        for profile, partnership in await creator_affiliates(db, creator_id)
    ]


async def affiliate_partners(db: AsyncSession, affiliate_id):
    result = await db.execute(
        select(Profile, Partnership)
        .join(Partnership, Partnership.creator_id == Profile.id)
        .where(Partnership.affiliate_id == affiliate_id)
        .order_by(Partnership.created_at)
    )
    return result.all()


async def admin_workspace(db: AsyncSession) -> dict:
    users = await _all(db, select(Profile).order_by(Profile.created_at))
    return {
        "clients": [profile_out(u) for u in users if u.has_role(ROLE_CREATOR)],
        "users": [profile_out(u) for u in users],
        "products": [product_out(p) for p in await _all(db, select(Product))],
        "resources": [resource_out(r) for r in await _all(db, select(Resource))],
        "payouts": [payout_out(p) for p in await _all(db, select(Payout))],
        "payments": [payment_out(p) for p in await _all(db, select(Payment).order_by(Payment.date))],
    }


async def creator_workspace(db: AsyncSession, creator: Profile) -> dict:
    return {
        "affiliates": await scoped_affiliates(db, creator.id),
        "payouts": [payout_out(p) for p in await _all(db, select(Payout).where(Payout.creator_id == creator.id))],
        "products": [product_out(p) for p in await _all(db, select(Product).where(Product.user_id == creator.id))],
        "resources": [resource_out(r) for r in await _all(db, select(Resource).where(Resource.user_id == creator.id))],
        "communications": [
            communication_out(c)
            for c in await _all(db, select(Communication).where(Communication.sender_id == creator.id))
        ],
    }


async def affiliate_workspace(db: AsyncSession, affiliate: Profile) -> dict:
    partners = await affiliate_partners(db, affiliate.id)
    partner_ids = [profile.id for profile, _ in partners]
    products = await _all(db, select(Product).where(Product.user_id.in_(partner_ids))) if partner_ids else []
    resources = await _all(db, select(Resource).where(Resource.user_id.in_(partner_ids))) if partner_ids else []
    return {
        "partners": [affiliate_out(profile, partnership) for profile, partnership in partners],
        "products": [product_out(p) for p in products],
        "resources": [resource_out(r) for r in resources],
        "payouts": [payout_out(p) for p in await _all(db, select(Payout).where(Payout.user_id == affiliate.id))],
    }


@router.get("")
async def get_workspace(view: Optional[str] = Query(default=None),
                        profile: Profile = Depends(get_current_profile),
                        db: AsyncSession = Depends(get_async_db)):
    """Everything the dashboard shell loads after sign-in, scoped by role."""
    role = acting_role(profile, view)
    if role == ROLE_SUPER_ADMIN:
        data = await admin_workspace(db)
    elif role == ROLE_CREATOR:
        data = await creator_workspace(db, profile)
    else:
        data = await affiliate_workspace(db, profile)

    settings = await ensure_user_settings(db, profile)
    platform = await get_platform_settings(db)
    await db.commit()
    return {
        "view": role,
        "user": profile_out(profile),
        "settings": user_settings_out(settings),
        "platform": platform_settings_out(platform),
        **data,
    }
