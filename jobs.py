import logging
from datetime import date, timedelta
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from config.database import AsyncSession, AsyncSessionLocal
from config.plans import DEFAULT_CLEARING_DAYS
from models.sale import Sale, SaleStatusEnum
from models.payout import Payout, PayoutStatusEnum
from models.profile import Profile
from models.userSettings import UserSettings
from utils import utctoday

logger = logging.getLogger(__name__)


async def _clearing_days(db: AsyncSession, creator_ids) -> dict:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id.in_(creator_ids)))
    return {row.user_id: row.clearing_days for row in result.scalars().all()}


async def clear_pending_sales(db: AsyncSession, today: date | None = None) -> int:
    """Mark pending sales as Cleared once their creator's clearing window has passed."""
    today = today or utctoday()
    result = await db.execute(select(Sale).where(Sale.status == SaleStatusEnum.Pending))
    pending = result.scalars().all()
    if not pending:
        return 0

    clearing = await _clearing_days(db, {sale.creator_id for sale in pending})
    cleared = 0
    for sale in pending:
        days = clearing.get(sale.creator_id)
        if days is None:
            days = DEFAULT_CLEARING_DAYS
        if sale.date + timedelta(days=days) <= today:
            sale.status = SaleStatusEnum.Cleared
            cleared += 1

    await db.commit()
    if cleared:
        logger.info("Cleared %s pending sales", cleared)
    return cleared


async def generate_payouts(db: AsyncSession, today: date | None = None, creator_id=None) -> list[Payout]:
    """Group cleared, unpaid sales into one Due payout per (creator, affiliate)."""
    today = today or utctoday()
    query = select(Sale).where(Sale.status == SaleStatusEnum.Cleared, Sale.payout_id.is_(None))
    if creator_id is not None:
        query = query.where(Sale.creator_id == creator_id)
    result = await db.execute(query)
    sales = result.scalars().all()
    if not sales:
        return []

    groups = {}
    for sale in sales:
        groups.setdefault((sale.creator_id, sale.affiliate_id), []).append(sale)

    affiliate_ids = {affiliate_id for _, affiliate_id in groups}
    result = await db.execute(select(Profile).where(Profile.id.in_(affiliate_ids)))
    affiliates = {profile.id: profile for profile in result.scalars().all()}

    period = today.strftime("%b %Y")
    payouts = []
    for (creator, affiliate_id), grouped in groups.items():
        affiliate = affiliates.get(affiliate_id)
        payout = Payout(
            user_id=affiliate_id,
            creator_id=creator,
            affiliate_name=affiliate.name if affiliate else "",
            affiliate_avatar=affiliate.avatar if affiliate else "",
            amount=round(sum(s.commission_amount + (s.bonus_amount or 0) for s in grouped), 2),
            period=period,
            due_date=today,
            status=PayoutStatusEnum.Due,
            sales=grouped,
        )
        db.add(payout)
        payouts.append(payout)

    await db.commit()
    logger.info("Generated %s payouts for %s", len(payouts), period)
    return payouts


async def run_scheduled_payout_cycle():
    """Scheduler entry point: clear what is due, then roll cleared sales into payouts."""
    async with AsyncSessionLocal() as db:
        try:
            await clear_pending_sales(db)
            await generate_payouts(db)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Scheduled payout cycle failed")
