"""
Survey Response Pydantic Schemas.

WHAT: Request/Response models for the response lifecycle endpoints.

WHY: Answer values are deliberately loose (string, number, boolean, list
or object) because the question types that produce them vary; the
aggregators normalise them later.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


AnswerValue = Union[bool, int, float, str, List[Any], Dict[str, Any], None]


class AnswerItemSchema(BaseModel):
    """One answer inside a response."""

    question_id: str = Field(..., min_length=1)
    answer: AnswerValue = None
    section_id: Optional[str] = None
    time_spent: Optional[float] = Field(default=None, ge=0)
    skipped: Optional[bool] = None

    def to_item(self) -> Dict[str, Any]:
        """Stored form, omitting unset optional fields."""
        return self.model_dump(exclude_none=True, exclude={"answer"}) | {"answer": self.answer}


class SessionStartRequest(BaseModel):
    """Start or resume an in-progress session."""

    survey_id: int
    respondent_id: str = Field(..., min_length=1, max_length=128)
    device_type: Optional[str] = Field(default=None, pattern="^(desktop|tablet|mobile)$")


class AnswerRequest(BaseModel):
    """Record one answer in a session."""

    question_id: str = Field(..., min_length=1)
    answer: AnswerValue = None
    section_id: Optional[str] = None
    time_spent: Optional[float] = Field(default=None, ge=0)
    skipped: Optional[bool] = None
    engagement_score: Optional[float] = None


class SessionRead(BaseModel):
    """In-progress session as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    survey_id: int
    respondent_id: str
    responses: List[Dict[str, Any]]
    is_completed: bool
    is_abandoned: Optional[bool] = None
    started_at: datetime
    last_updated_at: datetime
    engagement_score: Optional[float] = None
    device_type: Optional[str] = None


class SessionStartResponse(BaseModel):
    session: SessionRead
    created: bool


class ResponseSubmitRequest(BaseModel):
    """Submit a completed response."""

    survey_id: int
    responses: List[AnswerItemSchema] = Field(default_factory=list)
    respondent_id: Optional[str] = Field(default=None, max_length=128)
    session_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    progress: int = Field(default=100, ge=0, le=100)
    metadata: Optional[Dict[str, Any]] = None
    demographics: Optional[Dict[str, Any]] = None
    section_times: Optional[Dict[str, float]] = None
    engagement_score: Optional[float] = None


class ResponseRead(BaseModel):
    """Completed response as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    survey_id: int
    respondent_id: Optional[str] = None
    user_id: Optional[int] = None
    responses: List[Dict[str, Any]]
    completed: bool
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    completion_time: Optional[float] = None
    progress: int
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="response_metadata")
    demographics: Optional[Dict[str, Any]] = None
    section_times: Optional[Dict[str, Any]] = None
    engagement_score: Optional[float] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ResponseSubmitResult(BaseModel):
    response: ResponseRead
    created: bool


class ResponseUpdateRequest(BaseModel):
    """Administrative correction of a completed response."""

    responses: Optional[List[AnswerItemSchema]] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    metadata: Optional[Dict[str, Any]] = None
    demographics: Optional[Dict[str, Any]] = None
    section_times: Optional[Dict[str, float]] = None
    engagement_score: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def to_fields(self) -> Dict[str, Any]:
        """Model field values for the fields the client actually sent."""
        fields = self.model_dump(exclude_unset=True)
        if "responses" in fields:
            fields["responses"] = [item.to_item() for item in self.responses or []]
        if "metadata" in fields:
            fields["response_metadata"] = fields.pop("metadata")
        return fields
