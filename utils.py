import math
import random
import re
import string
from jwt import encode, decode, exceptions
from fastapi import HTTPException
from passlib.context import CryptContext
from datetime import date, datetime, timedelta, timezone
from config.settings import (
    ALGORITHM,
    JWT_SECRET_KEY,
    REFRESH_JWT_KEY,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
)

password_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def get_hashed_password(password: str) -> str:
    return password_context.hash(password)


def verify_password(password: str, hashed_pass: str) -> bool:
    return password_context.verify(password, hashed_pass)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utctoday() -> date:
    return utcnow().date()


def expire_date(days: int) -> datetime:
    """Generate an expiration date for the given number of days."""
    return datetime.now(timezone.utc) + timedelta(days=days)

def write_token(data: dict) -> str:
    """Generate a short-lived access token."""
    exp = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    token = encode(payload={**data, "exp": exp}, key=JWT_SECRET_KEY, algorithm=ALGORITHM)
    return token

def write_refresh_token(data: dict) -> str:
    """Generate a refresh token."""
    exp = expire_date(REFRESH_TOKEN_EXPIRE_DAYS)
    token = encode(payload={**data, "exp": exp}, key=REFRESH_JWT_KEY, algorithm=ALGORITHM)
    return token

def validate_refresh_token(token, output=False):
    try:
        decoded_token = decode(token, key=REFRESH_JWT_KEY, algorithms=[ALGORITHM])
        if output:
            return decoded_token
        return True
    except exceptions.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except exceptions.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def validate_token(token: str, output: bool = False):
    try:
        decoded_token = decode(token, key=JWT_SECRET_KEY, algorithms=[ALGORITHM])
        if output:
            return decoded_token
        return None
    except exceptions.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except exceptions.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def token_payload(profile) -> dict:
    """Minimal claims carried by access and refresh tokens."""
    return {
        "user_id": str(profile.id),
        "email": profile.email,
        "name": profile.name,
        "roles": list(profile.roles or []),
    }


def generate_code(length=8):
    # Allowed characters: uppercase letters and digits
    characters = string.ascii_uppercase + string.digits
    return ''.join(random.choice(characters) for _ in range(length))


def referral_code_from_name(name: str) -> str:
    """'Elena Rodriguez' -> 'elena-rodriguez', capped at 15 characters."""
    return re.sub(r"[^a-z0-9]", "-", name.lower())[:15]


def avatar_url(email: str) -> str:
    return f"https://i.pravatar.cc/150?u={email}"


def trial_days_remaining(trial_ends_at: datetime | None, now: datetime | None = None) -> int | None:
    if trial_ends_at is None:
        return None
    now = now or utcnow()
    if trial_ends_at < now:
        return 0
    return math.ceil((trial_ends_at - now).total_seconds() / 86400)


NO_TIER = {"threshold": 0, "rate": 0}


def resolve_commission_tier(tiers: list[dict] | None, sales_count: int) -> dict:
    """Highest tier whose threshold does not exceed the current sales count."""
    applicable = [tier for tier in (tiers or []) if sales_count >= tier["threshold"]]
    if not applicable:
        return NO_TIER
    return sorted(applicable, key=lambda tier: tier["threshold"], reverse=True)[0]


def next_commission_tier(tiers: list[dict] | None, sales_count: int) -> dict | None:
    upcoming = [tier for tier in (tiers or []) if tier["threshold"] > sales_count]
    if not upcoming:
        return None
    return min(upcoming, key=lambda tier: tier["threshold"])


def calculate_commission(sale_amount: float, tiers: list[dict] | None, sales_count: int) -> float:
    tier = resolve_commission_tier(tiers, sales_count)
    return round(float(sale_amount) * (tier["rate"] / 100), 2)


def bonus_reached(bonuses: list[dict] | None, sales: int) -> float:
    """Reward for the sales bonuses whose goal is hit exactly at this count."""
    return float(sum(
        bonus["reward"] for bonus in (bonuses or [])
        if bonus.get("type", "sales") == "sales" and bonus["goal"] == sales
    ))


def bonus_progress(bonuses: list[dict] | None, sales: int) -> list[dict]:
    return [
        {**bonus, "current": sales, "achieved": sales >= bonus["goal"]}
        for bonus in bonuses or []
        if bonus.get("type", "sales") == "sales"
    ]
