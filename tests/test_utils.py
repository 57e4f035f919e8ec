import string
from datetime import datetime, timedelta
import pytest
from fastapi import HTTPException

from utils import (
    resolve_commission_tier,
    next_commission_tier,
    calculate_commission,
    bonus_reached,
    bonus_progress,
    trial_days_remaining,
    referral_code_from_name,
    generate_code,
    get_hashed_password,
    verify_password,
    write_token,
    validate_token,
    write_refresh_token,
    validate_refresh_token,
)

TIERS = [
    {"threshold": 0, "rate": 10},
    {"threshold": 50, "rate": 20},
    {"threshold": 10, "rate": 15},
]


def test_no_tiers_means_zero_rate():
    assert resolve_commission_tier([], 5) == {"threshold": 0, "rate": 0}
    assert resolve_commission_tier(None, 0)["rate"] == 0
    assert calculate_commission(100, [], 3) == 0


def test_highest_threshold_not_exceeding_count_wins():
    assert resolve_commission_tier(TIERS, 0)["rate"] == 10
    assert resolve_commission_tier(TIERS, 9)["rate"] == 10
    assert resolve_commission_tier(TIERS, 10)["rate"] == 15
    assert resolve_commission_tier(TIERS, 500)["rate"] == 20


def test_tier_starting_above_zero_leaves_early_sales_unpaid():
    assert resolve_commission_tier([{"threshold": 5, "rate": 30}], 4)["rate"] == 0


def test_next_tier_is_the_lowest_threshold_above_count():
    assert next_commission_tier(TIERS, 0) == {"threshold": 10, "rate": 15}
    assert next_commission_tier(TIERS, 10) == {"threshold": 50, "rate": 20}
    assert next_commission_tier(TIERS, 50) is None


def test_commission_is_rounded_to_cents():
    assert calculate_commission(99.99, [{"threshold": 0, "rate": 15}], 0) == 15.0
    assert calculate_commission(33.33, [{"threshold": 0, "rate": 10}], 0) == 3.33


def test_bonus_reached_only_on_exact_goal():
    bonuses = [{"goal": 3, "reward": 100, "type": "sales"}, {"goal": 3, "reward": 40}]
    assert bonus_reached(bonuses, 2) == 0
    assert bonus_reached(bonuses, 3) == 140
    assert bonus_reached(bonuses, 4) == 0


def test_stored_click_goals_are_never_paid():
    bonuses = [{"goal": 3, "reward": 40, "type": "clicks"}]
    assert bonus_reached(bonuses, 3) == 0
    assert bonus_progress(bonuses, sales=3) == []


def test_bonus_progress_counts_sales():
    bonuses = [{"goal": 5, "reward": 50, "type": "sales"}, {"goal": 10, "reward": 80, "type": "sales"}]
    progress = bonus_progress(bonuses, sales=5)
    assert [(p["current"], p["achieved"]) for p in progress] == [(5, True), (5, False)]


def test_trial_days_remaining():
    now = datetime(2024, 3, 1, 12, 0, 0)
    assert trial_days_remaining(None, now) is None
    assert trial_days_remaining(now - timedelta(seconds=1), now) == 0
    assert trial_days_remaining(now + timedelta(days=13, hours=1), now) == 14
    assert trial_days_remaining(now + timedelta(days=14), now) == 14


def test_referral_code_from_name():
    assert referral_code_from_name("Elena Rodriguez") == "elena-rodriguez"
    assert referral_code_from_name("Jean-Luc O'Neil the Third") == "jean-luc-o-neil"


def test_generate_code_shape():
    code = generate_code()
    assert len(code) == 8
    assert all(char in string.ascii_uppercase + string.digits for char in code)


def test_password_hash_round_trip():
    hashed = get_hashed_password("s3cret!")
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)


def test_access_and_refresh_tokens_use_separate_keys():
    access = write_token({"user_id": "abc"})
    refresh = write_refresh_token({"user_id": "abc"})
    assert validate_token(access, output=True)["user_id"] == "abc"
    assert validate_refresh_token(refresh, output=True)["user_id"] == "abc"
    with pytest.raises(HTTPException) as exc:
        validate_token(refresh, output=True)
    assert exc.value.status_code == 401
