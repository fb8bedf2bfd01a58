"""Dashboard statistics and the scammer-time-wasted leaderboard."""

from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scambait.api.schemas import CallSummary
from scambait.database.db import get_db
from scambait.database.models import Call, CallStatus
from scambait.database.repository import CallRepository, CallStatsRepository
from scambait.utils.errors import DatabaseError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])

CALLS_BY_DAY_WINDOW = 30
# Rough hourly wage of an overseas call-centre scammer, in dollars
SCAMMER_HOURLY_WAGE = 3.0
RAGE_QUIT_SECONDS = 30


def _round(value: float) -> int:
    return int(value + 0.5)


def _summaries(db: Session, calls: List[Call]) -> List[dict]:
    counts = CallRepository(db).segment_counts([call.id for call in calls])
    result = []
    for call in calls:
        summary = CallSummary.model_validate(call)
        summary.segment_count = counts.get(call.id, 0)
        result.append(summary.model_dump(by_alias=True, mode="json"))
    return result


def build_dashboard_stats(db: Session, today: Optional[datetime] = None) -> dict:
    stats = CallStatsRepository(db)
    today = (today or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
    window_start = today - timedelta(days=CALLS_BY_DAY_WINDOW - 1)

    total_duration, average_duration = stats.duration_totals()

    by_status = {status.value: 0 for status in CallStatus}
    for status, count in stats.counts_by_status().items():
        by_status[CallStatus(status).value] = count

    per_day = dict(stats.counts_by_day(since=window_start))
    calls_by_day = []
    for offset in range(CALLS_BY_DAY_WINDOW):
        date = (window_start + timedelta(days=offset)).strftime("%Y-%m-%d")
        calls_by_day.append({"date": date, "count": per_day.get(date, 0)})

    return {
        "totalCalls": stats.total_calls(),
        "totalDuration": total_duration,
        "averageDuration": _round(average_duration),
        "callsByStatus": by_status,
        "callsByDay": calls_by_day,
        "topRatedCalls": _summaries(db, stats.top_rated(5)),
        "longestCalls": _summaries(db, stats.longest(5)),
    }


def build_leaderboard(db: Session) -> dict:
    stats = CallStatsRepository(db)

    longest = stats.longest(1)
    top_rated = stats.top_rated(1)
    busiest = stats.busiest_day()

    breakdown = [
        {
            "persona": persona,
            "totalCalls": count,
            "totalDuration": total,
            "avgDuration": _round(avg_duration),
            "avgRating": round(avg_rating, 1) if avg_rating else None,
        }
        for persona, count, total, avg_duration, avg_rating in stats.persona_breakdown()
    ]

    best_by_duration = None
    for entry in breakdown:
        if best_by_duration is None or entry["avgDuration"] > best_by_duration["avgDuration"]:
            best_by_duration = entry

    best_by_rating = None
    for entry in breakdown:
        if entry["avgRating"] is None:
            continue
        if best_by_rating is None or entry["avgRating"] > best_by_rating["avgRating"]:
            best_by_rating = entry

    hourly = stats.counts_by_hour()
    total_seconds, _ = stats.duration_totals(status=CallStatus.COMPLETED)

    return {
        "longestCall": (
            {
                "id": longest[0].id,
                "duration": longest[0].duration,
                "persona": longest[0].persona,
                "createdAt": longest[0].created_at.isoformat(),
            }
            if longest
            else None
        ),
        "highestRatedCall": (
            {
                "id": top_rated[0].id,
                "rating": top_rated[0].rating,
                "persona": top_rated[0].persona,
                "duration": top_rated[0].duration,
                "createdAt": top_rated[0].created_at.isoformat(),
            }
            if top_rated
            else None
        ),
        "mostCallsInDay": {"date": busiest[0], "count": busiest[1]} if busiest else None,
        "bestPersonaByDuration": best_by_duration,
        "bestPersonaByRating": best_by_rating,
        "personaBreakdown": breakdown,
        "peakHours": [{"hour": hour, "count": hourly.get(hour, 0)} for hour in range(24)],
        "totalTimeWasted": total_seconds,
        "estimatedScammerSalaryWasted": round(total_seconds / 3600 * SCAMMER_HOURLY_WAGE, 2),
        "totalRageQuits": stats.rage_quits(RAGE_QUIT_SECONDS),
    }


@router.get("")
def get_stats(db: Session = Depends(get_db)) -> dict:
    try:
        result = build_dashboard_stats(db)
    except SQLAlchemyError as exc:
        logger.error("Stats aggregation failed: %s", exc)
        raise DatabaseError.query_failed("stats aggregation") from exc
    logger.info("Dashboard stats: %d calls, %ds total", result["totalCalls"], result["totalDuration"])
    return result


@router.get("/leaderboard")
def get_leaderboard(db: Session = Depends(get_db)) -> dict:
    try:
        return build_leaderboard(db)
    except SQLAlchemyError as exc:
        logger.error("Leaderboard aggregation failed: %s", exc)
        raise DatabaseError.query_failed("leaderboard") from exc
