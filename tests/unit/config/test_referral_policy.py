"""Unit tests for the referral policy built from settings."""

from datetime import timedelta

import pytest

from app.config.referral_policy import ReferralPolicy, get_referral_policy
from app.config.settings import Settings


def make_settings(**overrides) -> Settings:
    return Settings(internal_api_secret="test-secret", **overrides)


class TestGetReferralPolicy:
    def test_defaults(self):
        policy = get_referral_policy(make_settings())

        assert policy.min_account_age == timedelta(minutes=60)
        assert policy.velocity_cap == 3
        assert policy.velocity_window == timedelta(days=30)
        assert policy.ip_window is None
        assert policy.reward_days == 30

    @pytest.mark.parametrize("days", [None, 0, -5])
    def test_disabled_window_means_all_time(self, days):
        policy = get_referral_policy(make_settings(referral_velocity_window_days=days))

        assert policy.velocity_window is None

    def test_ip_window_configurable(self):
        policy = get_referral_policy(make_settings(referral_ip_window_days=7))

        assert policy.ip_window == timedelta(days=7)

    def test_negative_min_age_clamped(self):
        policy = get_referral_policy(make_settings(referral_min_account_age_minutes=-10))

        assert policy.min_account_age == timedelta(0)


class TestReferralPolicy:
    def test_is_frozen(self):
        policy = get_referral_policy(make_settings())
        with pytest.raises(AttributeError):
            policy.velocity_cap = 10  # type: ignore[misc]

    def test_describe(self):
        policy = ReferralPolicy(
            min_account_age=timedelta(hours=2),
            velocity_cap=5,
            velocity_window=None,
            ip_window=timedelta(days=14),
            reward_days=30,
        )

        assert policy.describe == {
            "min_account_age_minutes": 120,
            "velocity_cap": 5,
            "velocity_window_days": None,
            "ip_window_days": 14,
            "reward_days": 30,
        }


class TestSettings:
    def test_internal_api_disabled_without_secret(self):
        assert Settings(internal_api_secret="").internal_api_enabled is False

    def test_internal_api_enabled_with_secret(self):
        assert make_settings().internal_api_enabled is True
