import logging
import uuid
from typing import Literal
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, update
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ProfileStatusEnum, ROLE_AFFILIATE, ROLE_CREATOR
from models.partnership import Partnership, PartnershipStatusEnum
from models.product import Product
from models.sale import Sale
from models.payout import Payout
from models.affiliateClicks import AffiliateClicks
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role
from accounts import (
    assign_referral_code,
    find_profile_by_email,
    get_profile,
    merge_roles,
    new_profile,
    check_affiliate_limit,
)
from serializers import affiliate_out, sale_out, payout_out
from routers.workspace import affiliate_partners, creator_affiliate_counters, scoped_affiliates

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)
# Referral links are followed by anonymous visitors
links_router = APIRouter()


class AffiliateCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr


class AffiliateInvite(BaseModel):
    email: EmailStr


class PartnershipStatusUpdate(BaseModel):
    status: Literal["Active", "Pending", "Inactive"]


class ClickIncrement(BaseModel):
    p_id: int
    a_id: uuid.UUID


def _parse_uuid(value: str, what: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {what} ID format")


async def get_partnership(db: AsyncSession, creator_id, affiliate_id) -> Partnership | None:
    result = await db.execute(
        select(Partnership).where(Partnership.creator_id == creator_id, Partnership.affiliate_id == affiliate_id)
    )
    return result.scalars().first()


async def partner_affiliate(db: AsyncSession, creator: Profile, email: str, name: str,
                            status: PartnershipStatusEnum) -> tuple[Profile, Partnership]:
    """Find or create the affiliate profile for `email` and partner it with the creator."""
    affiliate = await find_profile_by_email(db, email)
    if affiliate is None:
        profile_status = ProfileStatusEnum.Active if status == PartnershipStatusEnum.Active else ProfileStatusEnum.Pending
        affiliate = new_profile(uuid.uuid4(), name, email, [ROLE_AFFILIATE], status=profile_status)
        await assign_referral_code(db, affiliate)
        db.add(affiliate)
        await db.flush()
    else:
        if affiliate.id == creator.id:
            raise HTTPException(status_code=400, detail="You cannot partner with yourself")
        affiliate.roles = merge_roles(affiliate.roles, ROLE_AFFILIATE)
        if await get_partnership(db, creator.id, affiliate.id):
            raise HTTPException(status_code=409, detail=f"{email} is already one of your affiliates")

    await check_affiliate_limit(db, creator)
    partnership = Partnership(creator_id=creator.id, affiliate_id=affiliate.id, status=status)
    db.add(partnership)
    await db.flush()
    return affiliate, partnership


async def creator_view(db: AsyncSession, creator: Profile, affiliate: Profile, partnership: Partnership) -> dict:
    counters = await creator_affiliate_counters(db, creator.id, affiliate.id)
    return affiliate_out(affiliate, partnership, counters[affiliate.id])


async def register_click(db: AsyncSession, product: Product, affiliate: Profile,
                         ip_address: str | None = None, user_agent: str | None = None) -> tuple[int, int]:
    """Log one click and return the product's and the affiliate's new click totals."""
    result = await db.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(clicks=func.coalesce(Product.clicks, 0) + 1)
        .returning(Product.clicks)
        .execution_options(synchronize_session=False)
    )
    product_clicks = result.scalar_one()
    result = await db.execute(
        update(Profile)
        .where(Profile.id == affiliate.id)
        .values(clicks=func.coalesce(Profile.clicks, 0) + 1)
        .returning(Profile.clicks)
        .execution_options(synchronize_session=False)
    )
    affiliate_clicks = result.scalar_one()
    db.add(AffiliateClicks(
        affiliate_id=affiliate.id,
        product_id=product.id,
        ip_address=ip_address,
        user_agent=user_agent,
    ))
    await db.commit()
    return product_clicks, affiliate_clicks


@router.get("/")
async def list_affiliates(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    return await scoped_affiliates(db, profile.id)


@router.post("/", status_code=201)
async def add_affiliate(body: AffiliateCreate, profile: Profile = Depends(get_current_profile),
                        db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    try:
        affiliate, partnership = await partner_affiliate(
            db, profile, body.email.lower(), body.name, PartnershipStatusEnum.Active
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Adding affiliate failed for creator %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error adding affiliate: {e}")

    logger.info("Creator %s added affiliate %s", profile.id, affiliate.id)
    return await creator_view(db, profile, affiliate, partnership)


@router.post("/invite", status_code=201)
async def invite_affiliate(body: AffiliateInvite, profile: Profile = Depends(get_current_profile),
                           db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    email = body.email.lower()
    try:
        affiliate, partnership = await partner_affiliate(
            db, profile, email, f"({email.split('@')[0]})", PartnershipStatusEnum.Pending
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Invite failed for creator %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error inviting affiliate: {e}")

    logger.info("Creator %s invited %s", profile.id, email)
    data = await creator_view(db, profile, affiliate, partnership)
    return {"message": f"Invitation sent to {email}.", "affiliate": data}


@router.get("/partners")
async def list_partners(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    """Creators the calling affiliate works with."""
    require_role(profile, ROLE_AFFILIATE)
    return [affiliate_out(creator, partnership) for creator, partnership in await affiliate_partners(db, profile.id)]


@router.post("/apply/{creator_id}", status_code=201)
async def apply_to_creator(creator_id: str, profile: Profile = Depends(get_current_profile),
                           db: AsyncSession = Depends(get_async_db)):
    creator = await get_profile(db, _parse_uuid(creator_id, "creator"))
    if creator is None or not creator.has_role(ROLE_CREATOR):
        raise HTTPException(status_code=404, detail="Creator not found")
    if creator.id == profile.id:
        raise HTTPException(status_code=400, detail="You cannot join your own program")
    if await get_partnership(db, creator.id, profile.id):
        raise HTTPException(status_code=409, detail="You have already applied to this program")
    await check_affiliate_limit(db, creator)

    profile.roles = merge_roles(profile.roles, ROLE_AFFILIATE)
    partnership = Partnership(creator_id=creator.id, affiliate_id=profile.id, status=PartnershipStatusEnum.Pending)
    db.add(partnership)
    await db.commit()
    logger.info("Affiliate %s applied to creator %s", profile.id, creator.id)
    return affiliate_out(creator, partnership)


@router.post("/rpc/increment_clicks")
async def increment_clicks(body: ClickIncrement, request: Request, profile: Profile = Depends(get_current_profile),
                           db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(Product).where(Product.id == body.p_id))
    product = result.scalars().first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    affiliate = await get_profile(db, body.a_id)
    if not affiliate:
        raise HTTPException(status_code=404, detail="Affiliate not found")

    try:
        product_clicks, affiliate_clicks = await register_click(
            db, product, affiliate, request.client.host if request.client else None, request.headers.get("user-agent")
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Click increment failed")
        raise HTTPException(status_code=500, detail=f"Error registering click: {e}")
    return {"productClicks": product_clicks, "affiliateClicks": affiliate_clicks}


@router.put("/{affiliate_id}/status")
async def update_affiliate_status(affiliate_id: str, body: PartnershipStatusUpdate,
                                  profile: Profile = Depends(get_current_profile),
                                  db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    affiliate = await get_profile(db, _parse_uuid(affiliate_id, "affiliate"))
    partnership = await get_partnership(db, profile.id, affiliate.id) if affiliate else None
    if partnership is None:
        raise HTTPException(status_code=404, detail="Affiliate not found")

    partnership.status = PartnershipStatusEnum(body.status)
    if partnership.status == PartnershipStatusEnum.Active and affiliate.status == ProfileStatusEnum.Pending:
        affiliate.status = ProfileStatusEnum.Active
    await db.commit()
    logger.info("Partnership %s set to %s", partnership.id, body.status)
    return await creator_view(db, profile, affiliate, partnership)


@router.get("/{affiliate_id}")
async def get_affiliate(affiliate_id: str, profile: Profile = Depends(get_current_profile),
                        db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    affiliate = await get_profile(db, _parse_uuid(affiliate_id, "affiliate"))
    partnership = await get_partnership(db, profile.id, affiliate.id) if affiliate else None
    if partnership is None:
        raise HTTPException(status_code=404, detail="Affiliate not found")

    sales = await db.execute(
        select(Sale).where(Sale.creator_id == profile.id, Sale.affiliate_id == affiliate.id).order_by(Sale.date.desc())
    )
    payouts = await db.execute(
        select(Payout).where(Payout.creator_id == profile.id, Payout.user_id == affiliate.id)
    )
    data = await creator_view(db, profile, affiliate, partnership)
    data["salesHistory"] = [sale_out(s) for s in sales.scalars().all()]
    data["payouts"] = [payout_out(p, with_sales=False) for p in payouts.scalars().all()]
    return data


@links_router.post("/links/{referral_code}/click")
async def follow_referral_link(referral_code: str, request: Request, product_id: int = Query(...),
                               db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(Profile).where(Profile.referral_code == referral_code))
    affiliate = result.scalars().first()
    if not affiliate:
        raise HTTPException(status_code=404, detail="Affiliate link not found")
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalars().first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    try:
        await register_click(db, product, affiliate, request.client.host if request.client else None,
                             request.headers.get("user-agent"))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Click registration failed for %s", referral_code)
        raise HTTPException(status_code=500, detail=f"Error registering click: {e}")
    return {"message": "Click registered", "redirect_url": product.sales_page_url, "affiliate": affiliate.name}
