"""SQLAlchemy models for recorded calls and their transcripts."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class CallStatus(str, enum.Enum):
    RINGING = "RINGING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    NO_ANSWER = "NO_ANSWER"


# Once a call reaches one of these, webhooks never move it again
TERMINAL_STATUSES = frozenset({CallStatus.COMPLETED, CallStatus.FAILED, CallStatus.NO_ANSWER})


class Speaker(str, enum.Enum):
    SCAMMER = "SCAMMER"
    EARL = "EARL"
    GLADYS = "GLADYS"
    KEVIN = "KEVIN"
    BRENDA = "BRENDA"


def _new_id() -> str:
    return str(uuid.uuid4())


class Call(Base):
    __tablename__ = "calls"

    id = Column(String(36), primary_key=True, default=_new_id)
    twilio_sid = Column(String, unique=True, index=True, nullable=False)
    from_number = Column(String, nullable=False)
    to_number = Column(String, nullable=False)
    status = Column(Enum(CallStatus), default=CallStatus.RINGING, nullable=False, index=True)
    duration = Column(Integer, nullable=True)  # seconds
    recording_url = Column(String, nullable=True)
    transcript_url = Column(String, nullable=True)
    rating = Column(Integer, nullable=True)  # 1-5
    notes = Column(Text, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    persona = Column(String, nullable=True)
    title = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    segments = relationship(
        "CallSegment",
        back_populates="call",
        cascade="all, delete-orphan",
        order_by="CallSegment.timestamp",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return f"<Call {self.id} sid={self.twilio_sid} status={self.status}>"


class CallSegment(Base):
    __tablename__ = "call_segments"

    id = Column(String(36), primary_key=True, default=_new_id)
    call_id = Column(String(36), ForeignKey("calls.id", ondelete="CASCADE"), index=True, nullable=False)
    speaker = Column(Enum(Speaker), nullable=False)
    text = Column(Text, nullable=False)
    timestamp = Column(Float, nullable=False)  # seconds from call start
    created_at = Column(DateTime, default=datetime.utcnow)

    call = relationship("Call", back_populates="segments")
