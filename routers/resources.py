import logging
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.future import select
from config.database import AsyncSession, get_async_db
from models.profile import Profile, ROLE_CREATOR, ROLE_SUPER_ADMIN
from models.product import Product
from models.resource import Resource, ResourceTypeEnum
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role, acting_role
from routers.products import partner_creator_ids
from serializers import resource_out
from utils import utctoday

logger = logging.getLogger(__name__)

router = APIRouter(route_class=VerifyTokenRoute)

ResourceType = Literal["Image", "PDF Guide", "Video Link", "Email Swipe"]


class ResourceCreate(BaseModel):
    type: ResourceType
    name: str = Field(min_length=1)
    description: str = ""
    content: str = ""
    thumbnail_url: Optional[str] = None
    product_ids: List[int] = []


class ResourceUpdate(BaseModel):
    type: Optional[ResourceType] = None
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    content: Optional[str] = None
    thumbnail_url: Optional[str] = None
    product_ids: Optional[List[int]] = None


async def _check_products(db: AsyncSession, creator: Profile, product_ids: list[int]):
    if not product_ids:
        return
    result = await db.execute(select(Product.id).where(Product.id.in_(product_ids), Product.user_id == creator.id))
    owned = {row[0] for row in result.all()}
    missing = sorted(set(product_ids) - owned)
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown products: {missing}")


async def _owned_resource(db: AsyncSession, resource_id: int, creator: Profile) -> Resource:
    result = await db.execute(select(Resource).where(Resource.id == resource_id, Resource.user_id == creator.id))
    resource = result.scalars().first()
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


@router.get("/")
async def list_resources(view: Optional[str] = Query(default=None), profile: Profile = Depends(get_current_profile),
                         db: AsyncSession = Depends(get_async_db)):
    role = acting_role(profile, view)
    query = select(Resource).order_by(Resource.id)
    if role == ROLE_CREATOR:
        query = query.where(Resource.user_id == profile.id)
    elif role != ROLE_SUPER_ADMIN:
        creator_ids = await partner_creator_ids(db, profile.id)
        if not creator_ids:
            return []
        query = query.where(Resource.user_id.in_(creator_ids))
    result = await db.execute(query)
    return [resource_out(r) for r in result.scalars().all()]


@router.post("/", status_code=201)
async def create_resource(body: ResourceCreate, profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    await _check_products(db, profile, body.product_ids)
    resource = Resource(
        user_id=profile.id,
        type=ResourceTypeEnum(body.type),
        name=body.name,
        description=body.description,
        content=body.content,
        thumbnail_url=body.thumbnail_url,
        product_ids=body.product_ids,
        creation_date=utctoday(),
    )
    db.add(resource)
    await db.commit()
    logger.info("Resource %s added by %s", resource.id, profile.id)
    return resource_out(resource)


@router.put("/{resource_id}")
async def update_resource(resource_id: int, body: ResourceUpdate, profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    resource = await _owned_resource(db, resource_id, profile)
    changes = body.model_dump(exclude_unset=True)
    if "product_ids" in changes:
        await _check_products(db, profile, changes["product_ids"] or [])
    if "type" in changes:
        changes["type"] = ResourceTypeEnum(changes["type"])
    for field, value in changes.items():
        setattr(resource, field, value)
    await db.commit()
    return resource_out(resource)


@router.delete("/{resource_id}")
async def delete_resource(resource_id: int, profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    resource = await _owned_resource(db, resource_id, profile)
    await db.delete(resource)
    await db.commit()
    return {"message": "Resource deleted"}
