"""Request and response bodies for the dashboard API (camelCase on the wire)."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from scambait.database.models import CallStatus, Speaker
from scambait.personas.catalog import is_valid_persona, persona_ids


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SegmentResponse(CamelModel):
    id: str
    call_id: str
    speaker: Speaker
    text: str
    timestamp: float
    created_at: Optional[datetime] = None


class CallBase(CamelModel):
    id: str
    twilio_sid: str
    from_number: str
    to_number: str
    status: CallStatus
    duration: Optional[int] = None
    recording_url: Optional[str] = None
    transcript_url: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    is_featured: bool = False
    persona: Optional[str] = None
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CallSummary(CallBase):
    segment_count: int = 0


class CallDetail(CallBase):
    segments: List[SegmentResponse] = Field(default_factory=list)


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class CallListResponse(CamelModel):
    calls: List[CallSummary]
    pagination: Pagination


class CallUpdate(CamelModel):
    """Editable call fields. Only the fields present in the body are written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    rating: Optional[StrictInt] = Field(default=None, ge=1, le=5)
    notes: Optional[StrictStr] = None
    tags: Optional[List[StrictStr]] = None
    is_public: Optional[StrictBool] = None
    is_featured: Optional[StrictBool] = None
    title: Optional[StrictStr] = Field(default=None, max_length=200)
    persona: Optional[StrictStr] = None

    @field_validator("persona")
    @classmethod
    def _known_persona(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_persona(value):
            raise ValueError(f"Must be one of: {', '.join(persona_ids())}")
        return value

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        cleaned: List[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned


class AnalyzeResponse(CamelModel):
    id: str
    scam_type: str
    scam_type_label: str
    tags: List[str]
    confidence: float
    updated: bool


class LoginRequest(BaseModel):
    password: Optional[str] = None
