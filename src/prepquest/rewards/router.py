"""Rewards API endpoints: attempts, points, levels, achievements, milestones, challenges, redemption."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.auth.dependencies import get_clock, get_current_user_id
from prepquest.config import Settings, get_settings
from prepquest.database import get_session
from prepquest.db.models import Milestone, RewardCatalogItem, UserDailyChallenge, UserRedemption
from prepquest.redis_client import get_redis_optional
from prepquest.rewards.achievement_service import (
    get_achievement_catalog,
    get_unlocked_achievement_ids,
    get_user_achievements,
)
from prepquest.rewards.challenge_service import claim_challenge, get_active_challenges, get_or_init_daily_challenges
from prepquest.rewards.engine import QuizAttemptInput, RewardsEngine
from prepquest.rewards.level_thresholds import compute_level, level_table
from prepquest.rewards.milestone_service import list_milestones, list_pending_milestones, mark_milestone_shown
from prepquest.rewards.milestones import describe_milestone
from prepquest.rewards.points_service import get_or_create_rewards, get_points_history
from prepquest.rewards.redemption_service import get_reward_catalog, list_redemptions, redeem_reward
from prepquest.rewards.schemas import (
    AchievementCatalogResponse,
    AchievementResponse,
    AllLevelsResponse,
    AttemptOutcomeResponse,
    ChallengeClaimResponse,
    DailyChallengeCatalogResponse,
    DailyChallengeResponse,
    LevelEntry,
    MilestoneResponse,
    MilestoneShownResponse,
    MilestonesResponse,
    PointsHistoryEntry,
    PointsHistoryResponse,
    QuizAttemptRequest,
    RedemptionResponse,
    RedemptionsResponse,
    RewardCatalogResponse,
    RewardItemResponse,
    RewardsSummaryResponse,
    UserAchievementItem,
    UserAchievementsResponse,
    UserDailyChallengeItem,
    UserDailyChallengesResponse,
)
from prepquest.utils.datetime_utils import Clock, ensure_utc, utc_today

router = APIRouter(prefix="/api/v1", tags=["Rewards"])


def _milestone_response(m: Milestone) -> MilestoneResponse:
    copy = describe_milestone(m.milestone_type, m.milestone_value)
    return MilestoneResponse(
        id=m.id,
        milestone_type=m.milestone_type,
        milestone_value=m.milestone_value,
        title=copy["title"],
        description=copy["description"],
        icon=copy["icon"],
        achieved_at=m.achieved_at,
        notification_shown=m.notification_shown,
        shown_at=m.shown_at,
    )


def _daily_item(row: UserDailyChallenge) -> UserDailyChallengeItem:
    return UserDailyChallengeItem(
        id=row.id,
        challenge=DailyChallengeResponse.model_validate(row.challenge, from_attributes=True),
        challenge_date=row.challenge_date,
        current_progress=row.current_progress,
        is_completed=row.is_completed,
        completed_at=row.completed_at,
        points_claimed=row.points_claimed,
        claimed_at=row.claimed_at,
    )


def _reward_item(item: RewardCatalogItem) -> RewardItemResponse:
    return RewardItemResponse.model_validate(item, from_attributes=True)


def _redemption_response(r: UserRedemption) -> RedemptionResponse:
    return RedemptionResponse(
        id=r.id,
        reward=_reward_item(r.reward),
        points_spent=r.points_spent,
        status=r.status,
        redeemed_at=r.redeemed_at,
        expires_at=r.expires_at,
    )


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels(max_level: int = Query(50, ge=1, le=200)):
    """Get level thresholds."""
    return AllLevelsResponse(levels=[LevelEntry(**entry) for entry in level_table(max_level)])


@router.get("/achievements", response_model=AchievementCatalogResponse)
async def list_achievements(db: AsyncSession = Depends(get_session)):
    """Get the achievement catalog ordered by tier, then requirement."""
    catalog = await get_achievement_catalog(db)
    return AchievementCatalogResponse(
        achievements=[AchievementResponse.model_validate(a, from_attributes=True) for a in catalog],
    )


@router.get("/daily-challenges", response_model=DailyChallengeCatalogResponse)
async def list_daily_challenges(db: AsyncSession = Depends(get_session)):
    """Get active daily challenges, easiest first."""
    challenges = await get_active_challenges(db)
    return DailyChallengeCatalogResponse(
        challenges=[DailyChallengeResponse.model_validate(c, from_attributes=True) for c in challenges],
    )


@router.get("/rewards/catalog", response_model=RewardCatalogResponse)
async def list_reward_catalog(db: AsyncSession = Depends(get_session)):
    """Get redeemable rewards, cheapest first."""
    return RewardCatalogResponse(rewards=[_reward_item(item) for item in await get_reward_catalog(db)])


# ── Authenticated endpoints ──


@router.post("/quiz/attempts", response_model=AttemptOutcomeResponse)
async def submit_attempt(
    body: QuizAttemptRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_redis_optional),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    """Score a finished quiz attempt and apply all progression rules."""
    engine = RewardsEngine(db, redis, clock=clock, max_retries=settings.rewards_max_update_retries)
    outcome = await engine.process_attempt(user_id, QuizAttemptInput(**body.model_dump()))
    return AttemptOutcomeResponse(**outcome.to_dict(), duplicate=outcome.duplicate)


@router.get("/users/me/rewards", response_model=RewardsSummaryResponse)
async def get_my_rewards(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Get current points, level and progress toward the next level."""
    rewards = await get_or_create_rewards(db, user_id, ensure_utc(clock()))
    await db.commit()
    level_info = compute_level(rewards.total_points)
    return RewardsSummaryResponse(
        total_points=rewards.total_points,
        current_level=rewards.current_level,
        level_threshold=level_info["level_threshold"],
        points_into_level=level_info["points_into_level"],
        points_for_level=level_info["points_for_level"],
        points_for_next_level=level_info["points_for_next_level"],
        consecutive_correct=rewards.consecutive_correct,
        max_consecutive_correct=rewards.max_consecutive_correct,
        total_time_seconds=rewards.total_time_seconds,
        last_session_date=rewards.last_session_date,
    )


@router.get("/users/me/points/history", response_model=PointsHistoryResponse)
async def get_my_points_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Get paginated points ledger history."""
    entries, total = await get_points_history(db, user_id, page, per_page)
    return PointsHistoryResponse(
        entries=[PointsHistoryEntry.model_validate(e, from_attributes=True) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/me/achievements", response_model=UserAchievementsResponse)
async def get_my_achievements(
    limit: int | None = Query(None, ge=1, le=100),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Get unlocked achievements, newest first. ``limit`` returns only the most recent."""
    unlocked = await get_user_achievements(db, user_id, limit=limit)
    total_unlocked = len(await get_unlocked_achievement_ids(db, user_id))
    catalog = await get_achievement_catalog(db)
    return UserAchievementsResponse(
        unlocked=[
            UserAchievementItem(
                achievement=AchievementResponse.model_validate(ua.achievement, from_attributes=True),
                unlocked_at=ua.unlocked_at,
            )
            for ua in unlocked
        ],
        total_available=len(catalog),
        total_unlocked=total_unlocked,
    )


@router.get("/users/me/achievements/recent", response_model=UserAchievementsResponse)
async def get_my_recent_achievements(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Get the most recently unlocked achievements."""
    return await get_my_achievements(limit=settings.recent_achievements_limit, user_id=user_id, db=db)


@router.get("/users/me/milestones", response_model=MilestonesResponse)
async def get_my_milestones(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Get all milestones, newest first."""
    return MilestonesResponse(milestones=[_milestone_response(m) for m in await list_milestones(db, user_id)])


@router.get("/users/me/milestones/pending", response_model=MilestonesResponse)
async def get_my_pending_milestones(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Get milestones not yet shown, oldest first."""
    pending = await list_pending_milestones(db, user_id)
    return MilestonesResponse(milestones=[_milestone_response(m) for m in pending])


@router.post("/users/me/milestones/{milestone_id}/shown", response_model=MilestoneShownResponse)
async def acknowledge_milestone(
    milestone_id: int,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Mark a milestone celebration as shown (no-op if already shown)."""
    updated = await mark_milestone_shown(db, user_id, milestone_id, ensure_utc(clock()))
    return MilestoneShownResponse(id=milestone_id, updated=updated)


@router.get("/users/me/daily-challenges", response_model=UserDailyChallengesResponse)
async def get_my_daily_challenges(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Get today's challenges with progress, creating today's rows on first access."""
    today = utc_today(clock)
    rows = await get_or_init_daily_challenges(db, user_id, today)
    await db.commit()
    return UserDailyChallengesResponse(challenge_date=today, challenges=[_daily_item(r) for r in rows])


@router.post("/users/me/daily-challenges/{challenge_id}/claim", response_model=ChallengeClaimResponse)
async def claim_daily_challenge(
    challenge_id: int,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_redis_optional),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    """Claim the points of a completed challenge."""
    result = await claim_challenge(
        db, redis, user_id, challenge_id, ensure_utc(clock()), settings.rewards_max_update_retries,
    )
    return ChallengeClaimResponse(**result)


@router.post("/rewards/catalog/{code}/redeem", response_model=RedemptionResponse)
async def redeem_catalog_reward(
    code: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_redis_optional),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    """Spend points on a reward."""
    redemption = await redeem_reward(
        db, redis, user_id, code, ensure_utc(clock()), settings.rewards_max_update_retries,
    )
    return _redemption_response(redemption)


@router.get("/users/me/redemptions", response_model=RedemptionsResponse)
async def get_my_redemptions(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Get redeemed rewards, newest first."""
    return RedemptionsResponse(redemptions=[_redemption_response(r) for r in await list_redemptions(db, user_id)])
