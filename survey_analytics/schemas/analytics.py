"""
Analytics Pydantic Schemas.

WHAT: Response models for the analytics dashboard endpoints.

WHY: The aggregators return plain dicts and dataclasses; these models
document the shapes in OpenAPI and validate them on the way out.
"""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class KPIResponse(BaseModel):
    """
    Scalar KPIs.

    participation_rate is only a real ratio when participation_basis is
    "invited"; with "respondents_only" it is 100 whenever anyone responded.
    """

    total_responses: int
    completed_responses: int
    incomplete_responses: int
    completion_rate: int
    average_engagement_score: float
    average_completion_time_minutes: float
    participation_rate: int
    participation_basis: Literal["respondents_only", "invited"]


class AnswerShareSchema(BaseModel):
    value: str
    count: int
    percentage: int


class QuestionPerformanceSchema(BaseModel):
    """
    Per-question performance.

    When metrics_estimated is true, avg_time_spent and/or skip_rate are
    placeholder estimates rather than measured values.
    """

    question_id: str
    question_text: str
    question_type: Literal["likert", "multiple_choice", "open_text", "unknown"]
    response_count: int
    average_score: float
    sentiment: Literal["positive", "neutral", "negative"]
    answers: List[AnswerShareSchema]
    avg_time_spent: float
    skip_rate: int
    completion_rate: int
    engagement_score: int
    response_quality: Literal["high", "medium", "low"]
    metrics_estimated: bool


class ResponseTrendPoint(BaseModel):
    date: str  # YYYY-MM-DD (UTC)
    responses: int
    completions: int


class CompletionTimePoint(BaseModel):
    """Average completion time for a day; minutes is null without data."""

    date: str
    minutes: Optional[float] = None
    samples: int


class ResponseRatePoint(BaseModel):
    date: str
    count: int


class DeviceUsageRow(BaseModel):
    device: Literal["desktop", "tablet", "mobile"]
    count: int
    percentage: int


class ParticipationRow(BaseModel):
    """Responses for one site, department or role; "unknown" when unset."""

    value: str
    total: int
    completed: int
    pending: int
    rate: int


class SectionRow(BaseModel):
    section_id: str
    total: int
    completed: int
    completion_rate: int
    average_time_seconds: Optional[float] = None


class RecentActivity(BaseModel):
    days: int
    completed_responses: int
    incomplete_responses: int
    avg_completion: int


class SurveySummaryResponse(BaseModel):
    total_surveys: int
    active_surveys: int
    total_responses: int
    completed_responses: int
    incomplete_responses: int
    avg_completion: int
    responses_by_survey: Dict[int, int] = Field(default_factory=dict)
    recent: RecentActivity


class DashboardResponse(BaseModel):
    """Every dashboard view computed from one data load."""

    kpis: KPIResponse
    question_performance: List[QuestionPerformanceSchema]
    response_trends: List[ResponseTrendPoint]
    completion_time_trends: List[CompletionTimePoint]
    response_rate_trends: List[ResponseRatePoint]
    device_usage: List[DeviceUsageRow]
    participation: List[ParticipationRow] = Field(default_factory=list)
    sections: List[SectionRow]
