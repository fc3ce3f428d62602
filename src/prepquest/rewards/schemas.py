"""Pydantic request/response models for rewards endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# --- Quiz attempts ---


class QuizAttemptRequest(BaseModel):
    attempt_id: str = Field(min_length=1, max_length=128)
    correct_answers: int = Field(ge=0)
    total_questions: int = Field(gt=0)
    time_spent_seconds: int = Field(ge=0)
    consecutive_correct: int = Field(ge=0)
    category: str | None = Field(default=None, max_length=128)


class UnlockedAchievementItem(BaseModel):
    code: str
    name: str
    tier: str
    points_reward: int
    celebrate: bool


class ReachedMilestoneItem(BaseModel):
    milestone_type: str
    milestone_value: int
    title: str


class AttemptOutcomeResponse(BaseModel):
    attempt_id: str
    points_earned: int
    breakdown: dict[str, int]
    total_points: int
    previous_level: int
    new_level: int
    leveled_up: bool
    points_for_next_level: int
    achievements_unlocked: list[UnlockedAchievementItem] = []
    milestones_reached: list[ReachedMilestoneItem] = []
    challenges_completed: list[str] = []
    celebrate: bool = False
    duplicate: bool = False


# --- Points / levels ---


class RewardsSummaryResponse(BaseModel):
    total_points: int
    current_level: int
    level_threshold: int
    points_into_level: int
    points_for_level: int
    points_for_next_level: int
    consecutive_correct: int
    max_consecutive_correct: int
    total_time_seconds: int
    last_session_date: date | None = None


class PointsHistoryEntry(BaseModel):
    id: int
    amount: int
    source: str
    source_id: str | None
    description: str | None
    created_at: datetime


class PointsHistoryResponse(BaseModel):
    entries: list[PointsHistoryEntry]
    total: int
    page: int
    per_page: int


class LevelEntry(BaseModel):
    level: int
    points_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    icon: str
    points_reward: int
    tier: str
    requirement_type: str
    requirement_value: int


class AchievementCatalogResponse(BaseModel):
    achievements: list[AchievementResponse]


class UserAchievementItem(BaseModel):
    achievement: AchievementResponse
    unlocked_at: datetime


class UserAchievementsResponse(BaseModel):
    unlocked: list[UserAchievementItem]
    total_available: int
    total_unlocked: int


# --- Milestones ---


class MilestoneResponse(BaseModel):
    id: int
    milestone_type: str
    milestone_value: int
    title: str
    description: str
    icon: str
    achieved_at: datetime
    notification_shown: bool
    shown_at: datetime | None = None


class MilestonesResponse(BaseModel):
    milestones: list[MilestoneResponse]


class MilestoneShownResponse(BaseModel):
    id: int
    updated: bool


# --- Daily challenges ---


class DailyChallengeResponse(BaseModel):
    id: int
    code: str
    title: str
    description: str
    icon: str
    challenge_type: str
    target_value: int
    points_reward: int
    difficulty: str


class DailyChallengeCatalogResponse(BaseModel):
    challenges: list[DailyChallengeResponse]


class UserDailyChallengeItem(BaseModel):
    id: int
    challenge: DailyChallengeResponse
    challenge_date: date
    current_progress: int
    is_completed: bool
    completed_at: datetime | None = None
    points_claimed: bool
    claimed_at: datetime | None = None


class UserDailyChallengesResponse(BaseModel):
    challenge_date: date
    challenges: list[UserDailyChallengeItem]


class ChallengeClaimResponse(BaseModel):
    challenge_id: int
    code: str
    points_awarded: int
    total_points: int
    current_level: int
    leveled_up: bool


# --- Redemption ---


class RewardItemResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    points_cost: int
    reward_type: str
    reward_value: dict
    available_for_tier: str
    max_redemptions: int | None = None


class RewardCatalogResponse(BaseModel):
    rewards: list[RewardItemResponse]


class RedemptionResponse(BaseModel):
    id: int
    reward: RewardItemResponse
    points_spent: int
    status: str
    redeemed_at: datetime
    expires_at: datetime | None = None


class RedemptionsResponse(BaseModel):
    redemptions: list[RedemptionResponse]
