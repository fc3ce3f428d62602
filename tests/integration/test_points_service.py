"""Points service tests: ledger idempotency, compare-and-swap writes, level-up detection."""

from __future__ import annotations

import dataclasses

import pytest
from sqlalchemy import func, select

from prepquest.db.models import PointsLedger
from prepquest.errors import ConcurrentUpdateError, InsufficientPoints
from prepquest.notifications.service import NotificationOutbox
from prepquest.rewards import points_service
from prepquest.rewards.points_service import (
    apply_rewards_update,
    get_or_create_rewards,
    get_points_history,
    get_rewards,
    grant_points,
    spend_points,
)


async def _grant(db, user_id, amount, key, now, outbox=None):
    return await grant_points(
        db, user_id, amount,
        source="test", source_id=None, description="test grant",
        idempotency_key=key, now=now, outbox=outbox,
    )


class TestGetOrCreateRewards:
    @pytest.mark.asyncio
    async def test_creates_level_one_record(self, db_session, user_id, clock):
        rewards = await get_or_create_rewards(db_session, user_id, clock())
        assert rewards.total_points == 0
        assert rewards.current_level == 1
        assert rewards.version == 0

    @pytest.mark.asyncio
    async def test_returns_existing_record(self, db_session, user_id, clock):
        await _grant(db_session, user_id, 40, "k1", clock())
        rewards = await get_or_create_rewards(db_session, user_id, clock())
        assert rewards.total_points == 40


class TestGrantPoints:
    @pytest.mark.asyncio
    async def test_hundred_points_levels_up_once(self, db_session, user_id, clock):
        """0 -> 100 points moves level 1 -> 2 and queues exactly one level_up."""
        outbox = NotificationOutbox()
        change = await _grant(db_session, user_id, 100, "k1", clock(), outbox)

        assert change.before.current_level == 1
        assert change.after.current_level == 2
        assert change.leveled_up
        assert [n.type for n in outbox.pending] == ["level_up"]
        assert outbox.pending[0].data == {"level": 2, "previous_level": 1}

        # More points within level 2: no new notification
        await _grant(db_session, user_id, 50, "k2", clock(), outbox)
        assert len(outbox) == 1

    @pytest.mark.asyncio
    async def test_duplicate_key_is_noop(self, db_session, user_id, clock):
        outbox = NotificationOutbox()
        first = await _grant(db_session, user_id, 120, "same", clock(), outbox)
        second = await _grant(db_session, user_id, 120, "same", clock(), outbox)

        assert first is not None
        assert second is None
        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 120
        assert len(outbox) == 1

        count = (await db_session.execute(
            select(func.count()).select_from(PointsLedger).where(PointsLedger.idempotency_key == "same")
        )).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_every_write_bumps_version_and_recomputes_level(self, db_session, user_id, clock):
        await _grant(db_session, user_id, 299, "a", clock())
        await _grant(db_session, user_id, 1, "b", clock())
        rewards = await get_rewards(db_session, user_id)
        assert rewards.version == 2
        assert rewards.total_points == 300
        assert rewards.current_level == 3

    @pytest.mark.asyncio
    async def test_extra_patch_applied_in_same_write(self, db_session, user_id, clock):
        change = await grant_points(
            db_session, user_id, 10,
            source="test", source_id=None, description="with patch",
            idempotency_key="patched", now=clock(),
            extra=lambda current: {"total_time_seconds": current.total_time_seconds + 90},
        )
        assert change.after.total_time_seconds == 90
        assert change.after.version == 1


class TestSpendPoints:
    @pytest.mark.asyncio
    async def test_insufficient_points_rejected_before_deduction(self, db_session, user_id, clock):
        await _grant(db_session, user_id, 80, "seed", clock())
        await db_session.commit()

        with pytest.raises(InsufficientPoints) as exc_info:
            await spend_points(
                db_session, user_id, 100,
                source="redemption", source_id=None, description="too much",
                idempotency_key="spend-1", now=clock(),
            )
        await db_session.rollback()

        assert exc_info.value.balance == 80
        assert exc_info.value.required == 100
        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 80

    @pytest.mark.asyncio
    async def test_spend_can_lower_level(self, db_session, user_id, clock):
        await _grant(db_session, user_id, 320, "seed", clock())
        change = await spend_points(
            db_session, user_id, 100,
            source="redemption", source_id=None, description="spend",
            idempotency_key="spend-1", now=clock(),
        )
        assert change.before.current_level == 3
        assert change.after.total_points == 220
        assert change.after.current_level == 2


class TestCompareAndSwap:
    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, db_session, user_id, clock, monkeypatch):
        """A version that never matches (another writer keeps winning) ends in ConcurrentUpdateError."""
        real = await get_or_create_rewards(db_session, user_id, clock())
        calls = []

        async def stale_read(db, uid, now):
            calls.append(1)
            return dataclasses.replace(real, version=real.version + 7)

        monkeypatch.setattr(points_service, "get_or_create_rewards", stale_read)

        with pytest.raises(ConcurrentUpdateError):
            await apply_rewards_update(
                db_session, user_id, lambda current: {"total_points": current.total_points + 5},
                clock(), max_retries=3,
            )
        assert len(calls) == 3

        monkeypatch.undo()
        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 0
        assert rewards.version == 0


class TestPointsHistory:
    @pytest.mark.asyncio
    async def test_newest_first_with_paging(self, db_session, user_id, clock):
        for i in range(5):
            await _grant(db_session, user_id, 10 + i, f"h{i}", clock())
            clock.advance(minutes=1)

        entries, total = await get_points_history(db_session, user_id, page=1, per_page=2)
        assert total == 5
        assert [e.amount for e in entries] == [14, 13]

        entries, _ = await get_points_history(db_session, user_id, page=3, per_page=2)
        assert [e.amount for e in entries] == [10]
