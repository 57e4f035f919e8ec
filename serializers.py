"""ORM rows to the camelCase JSON the dashboard client consumes."""
from utils import trial_days_remaining


def _value(member):
    return member.value if member is not None else None


def _iso(value):
    return value.isoformat() if value is not None else None


def profile_out(profile) -> dict:
    return {
        "id": str(profile.id),
        "name": profile.name,
        "email": profile.email,
        "avatar": profile.avatar,
        "roles": list(profile.roles or []),
        "currentPlan": profile.current_plan,
        "billingCycle": _value(profile.billing_cycle),
        "status": _value(profile.status),
        "joinDate": _iso(profile.join_date),
        "trialEndsAt": _iso(profile.trial_ends_at),
        "trialDaysRemaining": trial_days_remaining(profile.trial_ends_at),
        "onboardingStepCompleted": profile.onboarding_step_completed or 0,
        "companyName": profile.company_name,
        "sales": profile.sales or 0,
        "commission": round(profile.commission or 0, 2),
        "clicks": profile.clicks or 0,
        "referralCode": profile.referral_code,
        "couponCode": profile.coupon_code,
        "paypalEmail": profile.paypal_email,
        "notifications": profile.notifications or {},
    }


def affiliate_out(profile, partnership, counters: dict | None = None) -> dict:
    """An affiliate as seen by one creator: the profile plus that partnership's status.

    `counters` replaces the lifetime sales, commission and clicks with what the
    affiliate earned on that creator's products.
    """
    data = profile_out(profile)
    if counters is not None:
        data["sales"] = counters["sales"]
        data["commission"] = round(counters["commission"], 2)
        data["clicks"] = counters["clicks"]
    data["status"] = _value(partnership.status)
    data["partnershipId"] = str(partnership.id)
    data["partnerSince"] = _iso(partnership.created_at)
    return data


def product_out(product) -> dict:
    return {
        "id": product.id,
        "userId": str(product.user_id),
        "name": product.name,
        "price": product.price,
        "salesPageUrl": product.sales_page_url,
        "salesCount": product.sales_count or 0,
        "clicks": product.clicks or 0,
        "commissionTiers": product.commission_tiers or [],
        "bonuses": product.bonuses or [],
        "creationDate": _iso(product.creation_date),
        "isPubliclyListed": bool(product.is_publicly_listed),
        "description": product.description,
    }


def sale_out(sale) -> dict:
    return {
        "id": sale.id,
        "productId": sale.product_id,
        "productName": sale.product_name,
        "affiliateId": str(sale.affiliate_id),
        "creatorId": str(sale.creator_id),
        "saleAmount": sale.sale_amount,
        "commissionAmount": sale.commission_amount,
        "bonusAmount": sale.bonus_amount or 0,
        "date": _iso(sale.date),
        "status": _value(sale.status),
        "payoutId": sale.payout_id,
    }


def payout_out(payout, with_sales: bool = True) -> dict:
    data = {
        "id": payout.id,
        "userId": str(payout.user_id),
        "creatorId": str(payout.creator_id),
        "affiliateName": payout.affiliate_name,
        "affiliateAvatar": payout.affiliate_avatar,
        "amount": payout.amount,
        "period": payout.period,
        "dueDate": _iso(payout.due_date),
        "status": _value(payout.status),
    }
    if with_sales:
        data["sales"] = [sale_out(sale) for sale in payout.sales]
    return data


def payment_out(payment) -> dict:
    return {
        "id": payment.id,
        "userId": str(payment.user_id),
        "amount": payment.amount,
        "date": _iso(payment.date),
        "plan": payment.plan,
        "billingCycle": payment.billing_cycle,
    }


def communication_out(communication) -> dict:
    return {
        "id": communication.id,
        "senderId": str(communication.sender_id),
        "subject": communication.subject,
        "message": communication.message,
        "recipients": _value(communication.recipients),
        "date": _iso(communication.date),
    }


def resource_out(resource) -> dict:
    return {
        "id": resource.id,
        "userId": str(resource.user_id),
        "type": _value(resource.type),
        "name": resource.name,
        "description": resource.description,
        "content": resource.content,
        "thumbnailUrl": resource.thumbnail_url,
        "productIds": resource.product_ids or [],
        "creationDate": _iso(resource.creation_date),
    }


def user_settings_out(settings) -> dict:
    return {
        "userId": str(settings.user_id),
        "name": settings.name,
        "email": settings.email,
        "companyName": settings.company_name,
        "clearingDays": settings.clearing_days,
        "notifications": settings.notifications or {},
        "integrations": settings.integrations or {},
    }


def platform_settings_out(settings) -> dict:
    return {
        "announcementText": settings.announcement_text,
        "announcementEnabled": bool(settings.announcement_enabled),
    }
