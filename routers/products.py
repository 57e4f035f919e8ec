import logging
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import delete, func
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, get_async_db
from config.plans import DEFAULT_COMMISSION_TIERS, get_plan
from models.profile import Profile, ROLE_SUPER_ADMIN, ROLE_CREATOR
from models.partnership import Partnership
from models.product import Product
from models.sale import Sale
from models.affiliateClicks import AffiliateClicks
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role, acting_role
from accounts import count_products
from serializers import product_out
from utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)


class CommissionTier(BaseModel):
    threshold: int = Field(ge=0)
    rate: float = Field(ge=0, le=100)


class Bonus(BaseModel):
    goal: int = Field(gt=0)
    reward: float = Field(ge=0)
    type: Literal["sales"] = "sales"


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    sales_page_url: str = ""
    description: str = ""
    commission_tiers: Optional[List[CommissionTier]] = None
    bonuses: List[Bonus] = []
    is_publicly_listed: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    sales_page_url: Optional[str] = None
    description: Optional[str] = None
    commission_tiers: Optional[List[CommissionTier]] = None
    bonuses: Optional[List[Bonus]] = None
    is_publicly_listed: Optional[bool] = None


def apply_plan_features(product: Product, plan: dict):
    """Plans without tiered commissions get one flat tier, no bonuses and no listing."""
    tiers = sorted(product.commission_tiers or [], key=lambda tier: tier["threshold"])
    if plan["features"]["hasTieredCommissions"]:
        product.commission_tiers = tiers
        return
    product.commission_tiers = tiers[:1]
    product.bonuses = []
    product.is_publicly_listed = False


async def get_owned_product(db: AsyncSession, product_id: int, creator: Profile) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalars().first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.user_id != creator.id and not creator.has_role(ROLE_SUPER_ADMIN):
        raise HTTPException(status_code=403, detail="This product belongs to another creator")
    return product


async def partner_creator_ids(db: AsyncSession, affiliate_id) -> list:
    result = await db.execute(select(Partnership.creator_id).where(Partnership.affiliate_id == affiliate_id))
    return [row[0] for row in result.all()]


@router.get("/")
async def list_products(view: Optional[str] = Query(default=None),
                        profile: Profile = Depends(get_current_profile),
                        db: AsyncSession = Depends(get_async_db)):
    role = acting_role(profile, view)
    query = select(Product).order_by(Product.id)
    if role == ROLE_CREATOR:
        query = query.where(Product.user_id == profile.id)
    elif role != ROLE_SUPER_ADMIN:
        creator_ids = await partner_creator_ids(db, profile.id)
        if not creator_ids:
            return []
        query = query.where(Product.user_id.in_(creator_ids))
    result = await db.execute(query)
    return [product_out(p) for p in result.scalars().all()]


@router.get("/marketplace")
async def marketplace(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    """Publicly listed products with the creator affiliates would apply to."""
    result = await db.execute(
        select(Product, Profile)
        .join(Profile, Profile.id == Product.user_id)
        .where(Product.is_publicly_listed.is_(True))
        .order_by(Product.sales_count.desc())
    )
    items = []
    for product, creator in result.all():
        data = product_out(product)
        data["creator"] = {"id": str(creator.id), "name": creator.name, "avatar": creator.avatar,
                           "companyName": creator.company_name}
        items.append(data)
    return items


@router.post("/", status_code=201)
async def create_product(body: ProductCreate, profile: Profile = Depends(get_current_profile),
                         db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    plan = get_plan(profile.current_plan)
    limit = plan["limits"]["products"]
    if await count_products(db, profile.id) >= limit:
        logger.warning("Product limit reached for creator %s", profile.id)
        raise HTTPException(
            status_code=403,
            detail=f"Product limit reached for the {plan['name']} ({limit}). Upgrade to add more.",
        )

    tiers = body.commission_tiers
    product = Product(
        user_id=profile.id,
        name=body.name,
        price=body.price,
        sales_page_url=body.sales_page_url,
        description=body.description,
        sales_count=0,
        clicks=0,
        commission_tiers=[t.model_dump() for t in tiers] if tiers else [dict(t) for t in DEFAULT_COMMISSION_TIERS],
        bonuses=[b.model_dump() for b in body.bonuses],
        is_publicly_listed=body.is_publicly_listed,
        creation_date=utcnow().date(),
    )
    apply_plan_features(product, plan)
    try:
        db.add(product)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Product creation failed for %s", profile.id)
        raise HTTPException(status_code=500, detail=f"Error adding product: {e}")

    logger.info("Product %s created by %s", product.id, profile.id)
    return product_out(product)


@router.get("/{product_id}")
async def get_product(product_id: int, profile: Profile = Depends(get_current_profile),
                      db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalars().first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    visible = (
        product.user_id == profile.id
        or product.is_publicly_listed
        or profile.has_role(ROLE_SUPER_ADMIN)
        or product.user_id in await partner_creator_ids(db, profile.id)
    )
    if not visible:
        raise HTTPException(status_code=404, detail="Product not found")

    data = product_out(product)
    sales = await db.execute(
        select(func.count(Sale.id), func.coalesce(func.sum(Sale.sale_amount), 0))
        .where(Sale.product_id == product.id)
    )
    count, revenue = sales.one()
    data["revenue"] = round(float(revenue), 2)
    data["recordedSales"] = count
    return data


@router.put("/{product_id}")
async def update_product(product_id: int, body: ProductUpdate, profile: Profile = Depends(get_current_profile),
                         db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    product = await get_owned_product(db, product_id, profile)

    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(product, field, value)
    apply_plan_features(product, get_plan(profile.current_plan))

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Product update failed for %s", product_id)
        raise HTTPException(status_code=500, detail=f"Error updating product: {e}")
    return product_out(product)


@router.delete("/{product_id}")
async def delete_product(product_id: int, profile: Profile = Depends(get_current_profile),
                         db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    product = await get_owned_product(db, product_id, profile)

    result = await db.execute(select(func.count(Sale.id)).where(Sale.product_id == product.id))
    if result.scalar():
        raise HTTPException(status_code=409, detail="Products with recorded sales cannot be deleted")

    try:
        await db.execute(delete(AffiliateClicks).where(AffiliateClicks.product_id == product.id))
        await db.delete(product)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Product deletion failed for %s", product_id)
        raise HTTPException(status_code=500, detail=f"Error deleting product: {e}")

    logger.info("Product %s deleted by %s", product_id, profile.id)
    return {"message": "Product deleted"}
