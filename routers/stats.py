from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.future import select
from config.database import AsyncSession, get_async_db
from config.plans import get_plan
from models.profile import Profile, ROLE_CREATOR, ROLE_AFFILIATE, ROLE_SUPER_ADMIN
from models.product import Product
from models.sale import Sale
from models.payout import Payout
from models.payment import Payment
from middlewares.verify_token_routes import VerifyTokenRoute
from middlewares.current_profile import get_current_profile, require_role
from routers.workspace import affiliate_partners, scoped_affiliates
from serializers import product_out, profile_out
from utils import utctoday
import analytics

router = APIRouter(route_class=VerifyTokenRoute)


def _range(preset: str, start: Optional[date], end: Optional[date]):
    try:
        return analytics.resolve_date_range(preset, utctoday(), start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _all(db: AsyncSession, query):
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/dashboard")
async def creator_dashboard(date_range: str = Query("30d", alias="range"),
                            start: Optional[date] = Query(default=None),
                            end: Optional[date] = Query(default=None),
                            profile: Profile = Depends(get_current_profile),
                            db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    range_start, range_end = _range(date_range, start, end)

    affiliates = await scoped_affiliates(db, profile.id)
    products = await _all(db, select(Product).where(Product.user_id == profile.id))
    sales = await _all(db, select(Sale).where(Sale.creator_id == profile.id))

    return {
        "range": {"start": range_start.isoformat(), "end": range_end.isoformat()},
        "commissions": analytics.commission_split(sales, range_start, range_end),
        "monthlySales": analytics.monthly_sales_series(sales, utctoday()),
        "topAffiliates": analytics.top_affiliates(affiliates),
        "topProducts": [product_out(p) for p in analytics.top_products(products)],
        "totalClicks": sum(a["clicks"] for a in affiliates),
        "activeAffiliates": sum(1 for a in affiliates if a["status"] == "Active"),
        "planUsage": analytics.plan_usage(get_plan(profile.current_plan), len(affiliates), len(products)),
    }


@router.get("/reports")
async def creator_reports(window: str = Query("30d"), profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_CREATOR)
    affiliates = await scoped_affiliates(db, profile.id)
    products = await _all(db, select(Product).where(Product.user_id == profile.id))
    sales = await _all(db, select(Sale).where(Sale.creator_id == profile.id))
    try:
        windowed = analytics.report_sales(sales, window, utctoday())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "window": window,
        "affiliates": analytics.affiliate_report(affiliates, windowed),
        "products": analytics.product_report(products, windowed),
    }


@router.get("/affiliate")
async def affiliate_stats(profile: Profile = Depends(get_current_profile), db: AsyncSession = Depends(get_async_db)):
    """Portal numbers for the calling affiliate across every partner creator."""
    require_role(profile, ROLE_AFFILIATE)
    partner_ids = [creator.id for creator, _ in await affiliate_partners(db, profile.id)]
    products = await _all(db, select(Product).where(Product.user_id.in_(partner_ids))) if partner_ids else []
    payouts = await _all(db, select(Payout).where(Payout.user_id == profile.id))
    sales = await _all(db, select(Sale).where(Sale.affiliate_id == profile.id))
    return analytics.affiliate_portal_stats(profile, payouts, products, sales)


@router.get("/admin/overview")
async def admin_overview(date_range: str = Query("30d", alias="range"),
                         start: Optional[date] = Query(default=None),
                         end: Optional[date] = Query(default=None),
                         profile: Profile = Depends(get_current_profile),
                         db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_SUPER_ADMIN)
    range_start, range_end = _range(date_range, start, end)
    payments = await _all(db, select(Payment))
    clients = [p for p in await _all(db, select(Profile)) if p.has_role(ROLE_CREATOR)]

    overview = analytics.admin_overview(payments, clients, range_start, range_end)
    overview["range"] = {"start": range_start.isoformat(), "end": range_end.isoformat()}
    overview["revenueSeries"] = analytics.revenue_series(payments, range_start, range_end)
    overview["recentClients"] = [profile_out(c) for c in analytics.recent_clients(clients)]
    return overview


@router.get("/admin/analytics")
async def admin_analytics(date_range: str = Query("30d", alias="range"),
                          start: Optional[date] = Query(default=None),
                          end: Optional[date] = Query(default=None),
                          profile: Profile = Depends(get_current_profile),
                          db: AsyncSession = Depends(get_async_db)):
    require_role(profile, ROLE_SUPER_ADMIN)
    range_start, range_end = _range(date_range, start, end)
    users = await _all(db, select(Profile))
    products = await _all(db, select(Product))
    sales = await _all(db, select(Sale))

    return {
        "range": {"start": range_start.isoformat(), "end": range_end.isoformat()},
        "newInPeriod": analytics.new_in_period(users, products, sales, range_start, range_end),
        "userGrowth": analytics.user_growth(users, range_end),
        "productGrowth": analytics.product_growth(products, range_end),
        "commissionByMonth": analytics.commission_by_month(sales, range_start, range_end),
        "onboardingFunnel": analytics.onboarding_funnel(users),
    }
