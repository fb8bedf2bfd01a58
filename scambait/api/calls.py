"""Dashboard endpoints for browsing, annotating and deleting calls."""

import asyncio
import math
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scambait.analysis.gemini_client import analyze_with_ai_fallback
from scambait.analysis.tagging import (
    ScamType,
    TagAnalysis,
    analyze_transcript,
    build_transcript,
    merge_tags,
    scam_type_label,
)
from scambait.api.auth import require_dashboard_session
from scambait.api.schemas import AnalyzeResponse, CallDetail, CallListResponse, CallSummary, CallUpdate, Pagination
from scambait.database.db import get_db
from scambait.database.models import Call, CallStatus
from scambait.database.repository import SORT_COLUMNS, CallFilters, CallRepository
from scambait.storage import s3
from scambait.utils.errors import DatabaseError, NotFoundError, ValidationError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calls", tags=["calls"], dependencies=[Depends(require_dashboard_session)])

MAX_PAGE_SIZE = 100
NON_NULLABLE_FIELDS = ("tags", "is_public", "is_featured")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


def _parse_date(field: str, value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError.invalid_value(field, "Expected an ISO 8601 date")
    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def build_filters(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    search: Optional[str] = None,
) -> CallFilters:
    """Normalise raw query parameters; out-of-range or unknown values fall back to defaults."""
    return CallFilters(
        page=max(1, _parse_int(page, 1)),
        limit=min(MAX_PAGE_SIZE, max(1, _parse_int(limit, 20))),
        status=CallStatus(status) if status in CallStatus.__members__ else None,
        start_date=_parse_date("startDate", start_date),
        end_date=_parse_date("endDate", end_date),
        sort_by=sort_by if sort_by in SORT_COLUMNS else "createdAt",
        sort_order="asc" if sort_order == "asc" else "desc",
        search=search.strip() if search and search.strip() else None,
    )


def _get_call_or_404(repo: CallRepository, call_id: str, with_segments: bool = False) -> Call:
    call = repo.get_with_segments(call_id) if with_segments else repo.get(call_id)
    if call is None:
        raise NotFoundError.record("Call", call_id)
    return call


@router.get("", response_model=CallListResponse)
def list_calls(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> CallListResponse:
    filters = build_filters(page, limit, status, start_date, end_date, sort_by, sort_order, search)
    try:
        total, rows = CallRepository(db).list(filters)
    except SQLAlchemyError as exc:
        logger.error("Listing calls failed: %s", exc)
        raise DatabaseError.query_failed("list calls") from exc

    total_pages = math.ceil(total / filters.limit)
    calls = []
    for call, segment_count in rows:
        summary = CallSummary.model_validate(call)
        summary.segment_count = segment_count
        calls.append(summary)

    return CallListResponse(
        calls=calls,
        pagination=Pagination(
            total=total,
            page=filters.page,
            limit=filters.limit,
            total_pages=total_pages,
            has_next=filters.page < total_pages,
            has_prev=filters.page > 1,
        ),
    )


@router.get("/{call_id}", response_model=CallDetail)
def get_call(call_id: str, db: Session = Depends(get_db)) -> CallDetail:
    call = _get_call_or_404(CallRepository(db), call_id, with_segments=True)
    return CallDetail.model_validate(call)


@router.patch("/{call_id}", response_model=CallDetail)
def update_call(call_id: str, payload: CallUpdate, db: Session = Depends(get_db)) -> CallDetail:
    repo = CallRepository(db)
    call = _get_call_or_404(repo, call_id)

    fields = {name: getattr(payload, name) for name in payload.model_fields_set}
    for name in NON_NULLABLE_FIELDS:
        if name in fields and fields[name] is None:
            raise ValidationError.invalid_value(to_camel(name), "Cannot be null")

    if fields:
        repo.update_fields(call, **fields)
        logger.info("Updated call %s: %s", call_id, ", ".join(sorted(fields)))

    return CallDetail.model_validate(repo.get_with_segments(call_id))


@router.delete("/{call_id}")
def delete_call(call_id: str, db: Session = Depends(get_db)) -> dict:
    repo = CallRepository(db)
    call = _get_call_or_404(repo, call_id)
    key = s3.key_from_url(call.recording_url)

    repo.delete(call)
    logger.info("Deleted call %s", call_id)

    if key and s3.extract_call_id_from_key(key) != call_id:
        logger.warning("Recording %s does not belong to call %s; leaving it in storage", key, call_id)
    elif key:
        try:
            s3.get_storage_client().delete_recording(key)
        except Exception as exc:
            logger.warning("Recording %s for deleted call %s was not removed: %s", key, call_id, exc)

    return {"success": True, "id": call_id}


def _analysis_for(call: Call) -> Optional[str]:
    transcript = build_transcript(call.segments)
    return transcript if transcript.strip() else None


@router.post("/{call_id}/analyze", response_model=AnalyzeResponse)
async def analyze_call(call_id: str, db: Session = Depends(get_db)) -> AnalyzeResponse:
    repo = CallRepository(db)
    call = await asyncio.to_thread(_get_call_or_404, repo, call_id, True)

    transcript = _analysis_for(call)
    if transcript is None:
        return AnalyzeResponse(
            id=call.id,
            scam_type=ScamType.UNKNOWN.value,
            scam_type_label=scam_type_label(ScamType.UNKNOWN),
            tags=list(call.tags or []),
            confidence=0.0,
            updated=False,
        )

    analysis: TagAnalysis = await analyze_with_ai_fallback(transcript)
    existing = list(call.tags or [])
    merged = merge_tags(existing, analysis.tags)
    updated = len(merged) > len(existing)
    if updated:
        await asyncio.to_thread(repo.update_fields, call, tags=merged)

    logger.info(
        "Analyzed call %s: %s (confidence %.2f, %d new tags)",
        call.id,
        analysis.scam_type.value,
        analysis.confidence,
        len(merged) - len(existing),
    )
    return AnalyzeResponse(
        id=call.id,
        scam_type=analysis.scam_type.value,
        scam_type_label=scam_type_label(analysis.scam_type),
        tags=merged,
        confidence=analysis.confidence,
        updated=updated,
    )


@router.get("/{call_id}/analyze", response_model=AnalyzeResponse)
def preview_analysis(call_id: str, db: Session = Depends(get_db)) -> AnalyzeResponse:
    call = _get_call_or_404(CallRepository(db), call_id, with_segments=True)
    transcript = _analysis_for(call)
    analysis = analyze_transcript(transcript) if transcript else TagAnalysis()
    return AnalyzeResponse(
        id=call.id,
        scam_type=analysis.scam_type.value,
        scam_type_label=scam_type_label(analysis.scam_type),
        tags=list(call.tags or []),
        confidence=analysis.confidence,
        updated=False,
    )
