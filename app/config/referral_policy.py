"""Referral policy - anti-abuse thresholds and reward size for referral activation."""

from dataclasses import dataclass
from datetime import timedelta

from app.config.settings import Settings, settings


@dataclass(frozen=True)
class ReferralPolicy:
    """Tunable constants read by the activation guard chain."""

    min_account_age: timedelta
    velocity_cap: int
    velocity_window: timedelta | None  # None = all time
    ip_window: timedelta | None  # None = any time
    reward_days: int

    @property
    def describe(self) -> dict[str, int | None]:
        """Return the policy as plain numbers for logs and API responses."""
        return {
            "min_account_age_minutes": int(self.min_account_age.total_seconds() // 60),
            "velocity_cap": self.velocity_cap,
            "velocity_window_days": self.velocity_window.days if self.velocity_window else None,
            "ip_window_days": self.ip_window.days if self.ip_window else None,
            "reward_days": self.reward_days,
        }


def _window(days: int | None) -> timedelta | None:
    if not days or days <= 0:
        return None
    return timedelta(days=days)


def get_referral_policy(source: Settings | None = None) -> ReferralPolicy:
    """
    Build the referral policy from settings.

    Zero or negative windows mean "no window" (all time), so an operator can
    switch a window off without a code change.
    """
    cfg = source or settings
    return ReferralPolicy(
        min_account_age=timedelta(minutes=max(0, cfg.referral_min_account_age_minutes)),
        velocity_cap=cfg.referral_velocity_cap,
        velocity_window=_window(cfg.referral_velocity_window_days),
        ip_window=_window(cfg.referral_ip_window_days),
        reward_days=cfg.referral_reward_days,
    )
