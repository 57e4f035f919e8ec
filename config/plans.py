"""Subscription plans offered to creators and default per-user settings."""

DEFAULT_PLAN = "Starter Plan"

PLAN_DETAILS = {
    "Starter Plan": {
        "name": "Starter Plan",
        "price": 19,
        "annualPrice": 182,  # ~20% discount
        "limits": {"affiliates": 25, "products": 5},
        "features": {
            "hasTieredCommissions": False,
            "hasAffiliatePortal": True,
            "hasApiAccess": False,
            "prioritySupport": False,
        },
    },
    "Growth Plan": {
        "name": "Growth Plan",
        "price": 49,
        "annualPrice": 470,
        "limits": {"affiliates": 100, "products": 25},
        "features": {
            "hasTieredCommissions": True,
            "hasAffiliatePortal": True,
            "hasApiAccess": True,
            "prioritySupport": False,
        },
    },
    "Pro Plan": {
        "name": "Pro Plan",
        "price": 99,
        "annualPrice": 950,
        "limits": {"affiliates": 500, "products": 100},
        "features": {
            "hasTieredCommissions": True,
            "hasAffiliatePortal": True,
            "hasApiAccess": True,
            "prioritySupport": True,
        },
    },
}

DEFAULT_COMMISSION_TIERS = [{"threshold": 0, "rate": 20}]

DEFAULT_USER_NOTIFICATIONS = {
    "newAffiliate": True,
    "monthlyReport": True,
    "payoutReminders": False,
}

DEFAULT_INTEGRATIONS = {
    "stripe": "Disconnected",
    "kajabi": "Disconnected",
    "thrivecart": "Disconnected",
}

DEFAULT_CLEARING_DAYS = 30

DEFAULT_ANNOUNCEMENT = "Platform maintenance scheduled for this Sunday at 2 AM EST. Brief downtime is expected."


def get_plan(plan_name: str | None) -> dict:
    """Plan for a profile; unknown or missing names fall back to the Starter Plan."""
    return PLAN_DETAILS.get(plan_name or DEFAULT_PLAN, PLAN_DETAILS[DEFAULT_PLAN])
