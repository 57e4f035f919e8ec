from fastapi import APIRouter, Depends
from sqlalchemy.future import select
from config.database import AsyncSession, get_async_db
from config.plans import PLAN_DETAILS
from models.profile import Profile, ROLE_SUPER_ADMIN
from models.payment import Payment as PaymentModel
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile
from serializers import payment_out

router = APIRouter(route_class=VerifyTokenRoute)


@router.get("/")
async def list_payments(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    """Subscription payments: every tenant's for a super admin, otherwise the caller's own."""
    query = select(PaymentModel).order_by(PaymentModel.date.desc(), PaymentModel.id.desc())
    if not profile.has_role(ROLE_SUPER_ADMIN):
        query = query.where(PaymentModel.user_id == profile.id)
    result = await db.execute(query)
    return [payment_out(p) for p in result.scalars().all()]


@router.get("/plans")
async def list_plans():
    return list(PLAN_DETAILS.values())
