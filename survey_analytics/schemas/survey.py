"""
Survey Pydantic Schemas.

WHAT: Request/Response models for survey management endpoints.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class SurveyCreateRequest(BaseModel):
    """Request to create a survey."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    tag_ids: List[str] = Field(default_factory=list)
    published: bool = False


class SurveyRead(BaseModel):
    """Survey as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    published: bool
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    tag_ids: List[str] = Field(default_factory=list)
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class SurveyListResponse(BaseModel):
    """Page of surveys."""

    items: List[SurveyRead]
    skip: int
    limit: int
