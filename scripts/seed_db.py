"""Fill the local database with a handful of sample calls.

Usage:
    python scripts/seed_db.py [--reset]
"""

import argparse
import uuid
from datetime import datetime, timedelta

from scambait.database.db import SessionLocal, engine, init_db
from scambait.database.models import Base, CallStatus, Speaker
from scambait.database.repository import CallRepository
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

SAMPLE_CALLS = [
    {
        "from_number": "+15551234567",
        "persona": "earl",
        "status": CallStatus.COMPLETED,
        "duration": 1260,
        "rating": 5,
        "title": "IRS agent learns about General Patton",
        "notes": "Caller claimed to be from the IRS and stayed on for twenty minutes of parakeet stories.",
        "tags": ["irs", "urgent", "successful_waste"],
        "is_public": True,
        "is_featured": True,
        "segments": [
            (Speaker.SCAMMER, "This is Officer Smith from the IRS. You owe back taxes and must pay immediately.", 0.0),
            (Speaker.EARL, "The iris? Like the flower? Phyllis grew those out back.", 6.5),
            (Speaker.SCAMMER, "No sir, the Internal Revenue Service. There is a warrant for your arrest.", 12.0),
            (Speaker.EARL, "Warren? I know a Warren. Hold on, General Patton's squawking again.", 18.2),
        ],
    },
    {
        "from_number": "+15559876543",
        "persona": "kevin",
        "status": CallStatus.COMPLETED,
        "duration": 540,
        "rating": 4,
        "title": None,
        "notes": "Tech support scammer tried to get remote access. Kevin asked about the nature of computers.",
        "tags": ["tech-support"],
        "is_public": True,
        "is_featured": False,
        "segments": [
            (Speaker.SCAMMER, "Hello, I am calling from Microsoft technical support. Your computer has a virus.", 0.0),
            (Speaker.KEVIN, "Whoa. But like, what even is a computer, man? Is it us?", 5.0),
            (Speaker.SCAMMER, "Please download AnyDesk so I can get remote access.", 11.4),
        ],
    },
    {
        "from_number": "+15550001111",
        "persona": "brenda",
        "status": CallStatus.COMPLETED,
        "duration": 22,
        "rating": None,
        "title": None,
        "notes": "Hung up once Brenda pitched essential oils.",
        "tags": [],
        "is_public": False,
        "is_featured": False,
        "segments": [
            (Speaker.SCAMMER, "Congratulations, you won a prize in our sweepstakes!", 0.0),
            (Speaker.BRENDA, "Oh my gosh, hun, have you ever thought about being your own boss?", 4.2),
        ],
    },
    {
        "from_number": "+15552223333",
        "persona": "gladys",
        "status": CallStatus.NO_ANSWER,
        "duration": None,
        "rating": None,
        "title": None,
        "notes": None,
        "tags": [],
        "is_public": False,
        "is_featured": False,
        "segments": [],
    },
]


def seed(reset: bool = False) -> int:
    if reset:
        Base.metadata.drop_all(bind=engine)
    init_db()

    session = SessionLocal()
    try:
        repo = CallRepository(session)
        now = datetime.utcnow()
        for offset, sample in enumerate(SAMPLE_CALLS):
            call = repo.create(
                twilio_sid=f"CA{uuid.uuid4().hex}",
                from_number=sample["from_number"],
                to_number="+15550000000",
                persona=sample["persona"],
            )
            repo.update_fields(
                call,
                status=sample["status"],
                duration=sample["duration"],
                rating=sample["rating"],
                title=sample["title"],
                notes=sample["notes"],
                tags=list(sample["tags"]),
                is_public=sample["is_public"],
                is_featured=sample["is_featured"],
                created_at=now - timedelta(days=offset, hours=offset * 3),
            )
            for speaker, text, timestamp in sample["segments"]:
                repo.add_segment(call.id, speaker, text, timestamp)
            logger.info("Seeded call %s (%s)", call.id, sample["persona"])
    finally:
        session.close()
    return len(SAMPLE_CALLS)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the database with sample calls.")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()
    count = seed(reset=args.reset)
    logger.info("Inserted %d sample calls", count)


if __name__ == "__main__":
    main()
