"""In-memory ReferralStore and RewardGranter for activation-chain tests.

Every store method and every ledger operation of the granter is recorded in
``store.calls`` so tests can assert exactly how much work a check did. Each
call yields to the event loop first, which lets two concurrent checks
interleave the way two requests would against a real database.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

from app.models.referral import TERMINAL_STATES, ActivationState, Referral
from app.services.referrals.exceptions import GrantError, StorageError
from app.services.referrals.rewards import GrantResult, RewardGranter
from app.services.referrals.store import ReferralStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

WRITE_CALLS = {"try_finalize", "record_grant", "extend_trial"}

_ACTIVATION_FIELDS = (
    "activation_state",
    "activated_at",
    "activation_ip",
    "activation_event_type",
    "rejection_reason",
)


class InMemoryReferralStore(ReferralStore):
    """ReferralStore over plain dicts, with call recording and failure injection."""

    def __init__(self, now: datetime = NOW):
        self.now = now
        self.referrals: dict[uuid.UUID, Referral] = {}
        self.accounts: dict[uuid.UUID, datetime] = {}
        self.session_ips: dict[uuid.UUID, str | None] = {}
        # Reward ledger, written by FakeRewardGranter inside the same atomic scope
        self.grants: set[tuple[uuid.UUID, uuid.UUID]] = set()
        self.bonus_days: Counter[uuid.UUID] = Counter()
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    # Seeding ----------------------------------------------------------------

    def add_account(self, user_id: uuid.UUID, age: timedelta, ip: str | None = None) -> None:
        self.accounts[user_id] = self.now - age
        self.session_ips[user_id] = ip

    def add_referral(
        self,
        referrer_user_id: uuid.UUID,
        referred_user_id: uuid.UUID,
        state: ActivationState = ActivationState.PENDING,
        activation_ip: str | None = None,
        activated_ago: timedelta | None = None,
    ) -> Referral:
        referral = Referral(
            id=uuid.uuid4(),
            referrer_user_id=referrer_user_id,
            referred_user_id=referred_user_id,
            activation_state=state.value,
            activation_ip=activation_ip,
            activated_at=(self.now - (activated_ago or timedelta(days=1)))
            if state.is_terminal
            else None,
        )
        self.referrals[referral.id] = referral
        return referral

    # Introspection ----------------------------------------------------------

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def write_count(self) -> int:
        return sum(1 for name in self.calls if name in WRITE_CALLS)

    def state_of(self, referral_id: uuid.UUID) -> str:
        return self.referrals[referral_id].activation_state

    async def record(self, name: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(name)
        if name in self.fail_on:
            raise StorageError(f"{name} failed: injected", operation=name)

    # ReferralStore ----------------------------------------------------------

    async def find_pending_referral(self, referred_user_id):
        await self.record("find_pending_referral")
        for referral in self.referrals.values():
            if (
                referral.referred_user_id == referred_user_id
                and referral.activation_state == ActivationState.PENDING.value
            ):
                return referral
        return None

    async def get_account_created_at(self, user_id):
        await self.record("get_account_created_at")
        return self.accounts.get(user_id)

    async def count_activations_for_referrer(self, referrer_user_id, since):
        await self.record("count_activations_for_referrer")
        return sum(
            1
            for r in self.referrals.values()
            if r.referrer_user_id == referrer_user_id and self._activated_since(r, since)
        )

    async def get_session_ip(self, user_id):
        await self.record("get_session_ip")
        return self.session_ips.get(user_id)

    async def count_prior_activations_with_ip(self, ip, since):
        await self.record("count_prior_activations_with_ip")
        return sum(
            1
            for r in self.referrals.values()
            if r.activation_ip == ip and self._activated_since(r, since)
        )

    async def try_finalize(
        self,
        referral_id,
        to_state,
        *,
        activation_ip=None,
        event_type=None,
        rejection_reason=None,
    ):
        await self.record("try_finalize")
        referral = self.referrals.get(referral_id)
        # Check-and-set with no await in between: the conditional UPDATE
        if referral is None or referral.activation_state != ActivationState.PENDING.value:
            return False
        referral.activation_state = to_state.value
        referral.activated_at = self.now
        referral.activation_ip = activation_ip
        referral.activation_event_type = event_type
        referral.rejection_reason = rejection_reason
        return True

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        snapshot = (
            {
                rid: {field: getattr(r, field) for field in _ACTIVATION_FIELDS}
                for rid, r in self.referrals.items()
            },
            set(self.grants),
            Counter(self.bonus_days),
        )
        try:
            yield
        except BaseException:
            states, grants, bonus_days = snapshot
            for rid, saved in states.items():
                for field, value in saved.items():
                    setattr(self.referrals[rid], field, value)
            self.grants = grants
            self.bonus_days = bonus_days
            raise

    def _activated_since(self, referral: Referral, since: datetime | None) -> bool:
        if referral.activation_state not in TERMINAL_STATES:
            return False
        return since is None or (
            referral.activated_at is not None and referral.activated_at >= since
        )


class FakeRewardGranter(RewardGranter):
    """Idempotent granter writing into the store's ledger (two ops per grant)."""

    def __init__(self, store: InMemoryReferralStore, reward_days: int = 30):
        self.store = store
        self.reward_days = reward_days
        self.fail_for: set[uuid.UUID] = set()
        self.invocations: list[tuple[uuid.UUID, uuid.UUID]] = []

    async def grant_benefit(self, account_id, referral_id):
        self.invocations.append((account_id, referral_id))
        if account_id in self.fail_for:
            raise GrantError(
                f"Failed to grant referral reward to {account_id}: injected",
                account_id=account_id,
                operation="grant_benefit",
            )

        await self.store.record("record_grant")
        key = (referral_id, account_id)
        created = key not in self.store.grants
        self.store.grants.add(key)

        if created:
            await self.store.record("extend_trial")
            self.store.bonus_days[account_id] += self.reward_days

        return GrantResult(
            account_id=account_id,
            referral_id=referral_id,
            granted=created,
            reward_days=self.reward_days,
        )
