import logging
import uuid
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import func, update
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ROLE_CREATOR, ROLE_SUPER_ADMIN
from models.product import Product
from models.sale import Sale, SaleStatusEnum
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role, acting_role
from accounts import get_profile, adjust_affiliate_totals
from routers.products import get_owned_product
from serializers import sale_out
from utils import calculate_commission, bonus_reached, utctoday

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)


class SaleCreate(BaseModel):
    affiliate_id: uuid.UUID
    product_id: int
    sale_amount: float = Field(gt=0)


class CouponSaleCreate(BaseModel):
    coupon_code: str = Field(min_length=1)
    product_id: int
    sale_amount: float = Field(gt=0)


class SaleStatusUpdate(BaseModel):
    status: Literal["Pending", "Cleared", "Refunded"]


async def record_sale(db: AsyncSession, creator: Profile, affiliate: Profile, product_id: int,
                      sale_amount: float) -> Sale:
    """Credit a sale to an affiliate at the tier in force before this sale is counted."""
    product = await get_owned_product(db, product_id, creator)

    # Counters move in SQL so concurrent sales each get their own position
    result = await db.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(sales_count=func.coalesce(Product.sales_count, 0) + 1)
        .returning(Product.sales_count)
        .execution_options(synchronize_session=False)
    )
    sales_count = result.scalar_one() - 1
    commission = calculate_commission(sale_amount, product.commission_tiers, sales_count)

    # Refunded sales still count, a goal is only ever reached once per affiliate
    result = await db.execute(
        select(func.count(Sale.id)).where(Sale.product_id == product.id, Sale.affiliate_id == affiliate.id)
    )
    affiliate_sales_on_product = (result.scalar() or 0) + 1
    bonus = round(bonus_reached(product.bonuses, affiliate_sales_on_product), 2)

    sale = Sale(
        product_id=product.id,
        product_name=product.name,
        affiliate_id=affiliate.id,
        creator_id=product.user_id,
        sale_amount=round(sale_amount, 2),
        commission_amount=commission,
        bonus_amount=bonus,
        date=utctoday(),
        status=SaleStatusEnum.Pending,
    )
    if bonus:
        logger.info("Affiliate %s reached a %s bonus on product %s", affiliate.id, bonus, product.id)

    await adjust_affiliate_totals(db, affiliate.id, sales=1, commission=commission + bonus)
    db.add(sale)
    await db.commit()
    logger.info("Sale %s recorded for affiliate %s: commission %s", sale.id, affiliate.id, commission)
    return sale


@router.get("/")
async def list_sales(status: Optional[str] = Query(default=None), view: Optional[str] = Query(default=None),
                     profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    role = acting_role(profile, view)
    query = select(Sale).order_by(Sale.date.desc(), Sale.id.desc())
    if role == ROLE_CREATOR:
        query = query.where(Sale.creator_id == profile.id)
    elif role != ROLE_SUPER_ADMIN:
        query = query.where(Sale.affiliate_id == profile.id)
    if status:
        try:
            query = query.where(Sale.status == SaleStatusEnum(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown sale status '{status}'")
    result = await db.execute(query)
    return [sale_out(s) for s in result.scalars().all()]


@router.post("/", status_code=201)
async def create_sale(body: SaleCreate, profile: Profile = Depends(get_current_profile),
                      db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    affiliate = await get_profile(db, body.affiliate_id)
    if affiliate is None:
        raise HTTPException(status_code=404, detail="Affiliate not found")
    try:
        sale = await record_sale(db, profile, affiliate, body.product_id, body.sale_amount)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Recording sale failed")
        raise HTTPException(status_code=500, detail=f"Error recording sale: {e}")
    return {"message": f"Sale recorded for {affiliate.name}!", "sale": sale_out(sale)}


@router.post("/coupon", status_code=201)
async def create_sale_by_coupon(body: CouponSaleCreate, profile: Profile = Depends(get_current_profile),
                                db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    code = body.coupon_code.strip()
    result = await db.execute(select(Profile).where(func.lower(Profile.coupon_code) == code.lower()))
    affiliate = result.scalars().first()
    if affiliate is None:
        raise HTTPException(status_code=404, detail=f'Coupon code "{code}" not found.')
    try:
        sale = await record_sale(db, profile, affiliate, body.product_id, body.sale_amount)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Recording coupon sale failed")
        raise HTTPException(status_code=500, detail=f"Error recording sale: {e}")
    return {"message": f"Sale recorded for {affiliate.name}!", "sale": sale_out(sale)}


@router.put("/{sale_id}/status")
async def update_sale_status(sale_id: int, body: SaleStatusUpdate, profile: Profile = Depends(get_current_profile),
                             db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    result = await db.execute(select(Sale).where(Sale.id == sale_id, Sale.creator_id == profile.id))
    sale = result.scalars().first()
    if sale is None:
        raise HTTPException(status_code=404, detail="Sale not found")

    new_status = SaleStatusEnum(body.status)
    if sale.status == new_status:
        return sale_out(sale)
    if sale.status == SaleStatusEnum.Refunded:
        raise HTTPException(status_code=409, detail="Refunded sales cannot change status")
    if sale.payout_id is not None:
        raise HTTPException(status_code=409, detail="This sale is already part of a payout")

    if new_status == SaleStatusEnum.Refunded:
        reversed_amount = sale.commission_amount + (sale.bonus_amount or 0)
        await adjust_affiliate_totals(db, sale.affiliate_id, sales=-1, commission=-reversed_amount)
        logger.info("Sale %s refunded", sale.id)

    sale.status = new_status
    await db.commit()
    return sale_out(sale)
