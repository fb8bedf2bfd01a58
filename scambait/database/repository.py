"""Query layer for calls and transcript segments."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import extract, func, or_
from sqlalchemy.orm import Session, selectinload

from scambait.database.models import Call, CallSegment, CallStatus, Speaker
from scambait.personas.catalog import DEFAULT_PERSONA
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

SORT_COLUMNS = {
    "createdAt": Call.created_at,
    "duration": Call.duration,
    "rating": Call.rating,
}


@dataclass
class CallFilters:
    page: int = 1
    limit: int = 20
    status: Optional[CallStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    search: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class CallRepository:
    """All reads and writes of ``Call`` rows go through here."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        twilio_sid: str,
        from_number: str,
        to_number: str,
        persona: Optional[str] = None,
    ) -> Call:
        call = Call(
            twilio_sid=twilio_sid,
            from_number=from_number,
            to_number=to_number,
            status=CallStatus.RINGING,
            persona=persona,
            tags=[],
        )
        self.db.add(call)
        self._commit()
        self.db.refresh(call)
        return call

    def get(self, call_id: str) -> Optional[Call]:
        return self.db.get(Call, call_id)

    def get_with_segments(self, call_id: str) -> Optional[Call]:
        return (
            self.db.query(Call)
            .options(selectinload(Call.segments))
            .filter(Call.id == call_id)
            .first()
        )

    def find_by_sid(self, twilio_sid: str) -> Optional[Call]:
        # populate_existing forces a fresh read even if the row is already in the session
        return (
            self.db.query(Call)
            .filter(Call.twilio_sid == twilio_sid)
            .populate_existing()
            .first()
        )

    def list(self, filters: CallFilters) -> Tuple[int, List[Tuple[Call, int]]]:
        """Return the total match count and one page of ``(call, segment_count)`` pairs."""
        q = self.db.query(Call)
        if filters.status:
            q = q.filter(Call.status == filters.status)
        if filters.start_date:
            q = q.filter(Call.created_at >= filters.start_date)
        if filters.end_date:
            q = q.filter(Call.created_at <= filters.end_date)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            q = q.filter(
                or_(
                    func.lower(Call.from_number).like(pattern),
                    func.lower(Call.to_number).like(pattern),
                    func.lower(Call.notes).like(pattern),
                )
            )

        total = q.count()

        column = SORT_COLUMNS.get(filters.sort_by, Call.created_at)
        ordering = column.asc() if filters.sort_order == "asc" else column.desc()
        calls = q.order_by(ordering, Call.id).offset(filters.offset).limit(filters.limit).all()

        counts = self.segment_counts([call.id for call in calls])
        return total, [(call, counts.get(call.id, 0)) for call in calls]

    def segment_counts(self, call_ids: List[str]) -> dict:
        if not call_ids:
            return {}
        rows = (
            self.db.query(CallSegment.call_id, func.count(CallSegment.id))
            .filter(CallSegment.call_id.in_(call_ids))
            .group_by(CallSegment.call_id)
            .all()
        )
        return {call_id: count for call_id, count in rows}

    def update_fields(self, call: Call, **fields) -> Call:
        for name, value in fields.items():
            setattr(call, name, value)
        self._commit()
        self.db.refresh(call)
        return call

    def append_note(self, call: Call, note: str) -> Call:
        notes = f"{call.notes}\n{note}" if call.notes else note
        return self.update_fields(call, notes=notes)

    def delete(self, call: Call) -> None:
        self.db.delete(call)
        self._commit()

    def add_segment(self, call_id: str, speaker: Speaker, text: str, timestamp: float) -> CallSegment:
        segment = CallSegment(call_id=call_id, speaker=speaker, text=text, timestamp=timestamp)
        self.db.add(segment)
        self._commit()
        self.db.refresh(segment)
        return segment

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            logger.error("DB commit failed: %s", exc)
            raise


class CallStatsRepository:
    """Read-only aggregations behind the stats, leaderboard and hall-of-fame endpoints."""

    def __init__(self, db: Session):
        self.db = db

    def total_calls(self, status: Optional[CallStatus] = None) -> int:
        q = self.db.query(func.count(Call.id))
        if status:
            q = q.filter(Call.status == status)
        return q.scalar() or 0

    def duration_totals(self, status: Optional[CallStatus] = None) -> Tuple[int, float]:
        """Sum and average of known durations."""
        q = self.db.query(func.sum(Call.duration), func.avg(Call.duration)).filter(Call.duration.isnot(None))
        if status:
            q = q.filter(Call.status == status)
        total, average = q.one()
        return int(total or 0), float(average or 0)

    def counts_by_status(self) -> dict:
        rows = self.db.query(Call.status, func.count(Call.id)).group_by(Call.status).all()
        return {status: count for status, count in rows}

    def counts_by_day(self, since: Optional[datetime] = None) -> List[Tuple[str, int]]:
        day = func.date(Call.created_at)
        q = self.db.query(day, func.count(Call.id))
        if since:
            q = q.filter(Call.created_at >= since)
        rows = q.group_by(day).order_by(day).all()
        return [(str(date), count) for date, count in rows]

    def busiest_day(self) -> Optional[Tuple[str, int]]:
        day = func.date(Call.created_at)
        row = (
            self.db.query(day, func.count(Call.id).label("count"))
            .group_by(day)
            .order_by(func.count(Call.id).desc(), day.desc())
            .first()
        )
        return (str(row[0]), row[1]) if row else None

    def counts_by_hour(self) -> dict:
        hour = extract("hour", Call.created_at)
        rows = self.db.query(hour, func.count(Call.id)).group_by(hour).all()
        return {int(h): count for h, count in rows if h is not None}

    def top_rated(self, limit: int = 5) -> List[Call]:
        return (
            self.db.query(Call)
            .filter(Call.rating.isnot(None))
            .order_by(Call.rating.desc(), Call.created_at.desc())
            .limit(limit)
            .all()
        )

    def longest(self, limit: int = 5) -> List[Call]:
        return (
            self.db.query(Call)
            .filter(Call.duration.isnot(None))
            .order_by(Call.duration.desc(), Call.created_at.desc())
            .limit(limit)
            .all()
        )

    def persona_breakdown(self) -> List[Tuple[str, int, int, float, Optional[float]]]:
        """Per-persona ``(persona, calls, total_duration, avg_duration, avg_rating)`` over completed calls.

        Calls recorded before personas existed have no persona and count as Earl.
        """
        persona = func.coalesce(Call.persona, DEFAULT_PERSONA)
        rows = (
            self.db.query(
                persona,
                func.count(Call.id),
                func.sum(Call.duration),
                func.avg(Call.duration),
                func.avg(Call.rating),
            )
            .filter(Call.status == CallStatus.COMPLETED)
            .group_by(persona)
            .order_by(func.count(Call.id).desc())
            .all()
        )
        return [
            (name, count, int(total or 0), float(avg_duration or 0), float(avg_rating) if avg_rating is not None else None)
            for name, count, total, avg_duration, avg_rating in rows
        ]

    def rage_quits(self, threshold: int = 30) -> int:
        return (
            self.db.query(func.count(Call.id))
            .filter(Call.status == CallStatus.COMPLETED, Call.duration > 0, Call.duration < threshold)
            .scalar()
            or 0
        )

    def _public(self):
        return self.db.query(Call).filter(
            Call.status == CallStatus.COMPLETED,
            Call.duration.isnot(None),
            Call.duration > 0,
            Call.is_public.is_(True),
        )

    def public_longest(self, limit: int = 10) -> List[Call]:
        return self._public().order_by(Call.duration.desc()).limit(limit).all()

    def public_highest_rated(self, limit: int = 10, min_rating: int = 3) -> List[Call]:
        return (
            self._public()
            .filter(Call.rating.isnot(None), Call.rating >= min_rating)
            .order_by(Call.rating.desc(), Call.duration.desc())
            .limit(limit)
            .all()
        )

    def public_featured(self, limit: int = 6) -> List[Call]:
        return (
            self._public()
            .filter(Call.is_featured.is_(True))
            .order_by(Call.rating.desc(), Call.duration.desc())
            .limit(limit)
            .all()
        )
