"""Dashboard call endpoints: listing, detail, edits, deletion and analysis."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from scambait.database.models import Call, CallSegment, CallStatus, Speaker
from scambait.database.repository import CallRepository
from scambait.storage import s3


@pytest.fixture
def seeded(make_call):
    return [
        make_call(
            twilio_sid="CA1",
            status=CallStatus.COMPLETED,
            duration=300,
            rating=5,
            notes="IRS agent wanted gift cards",
            created_at=datetime(2026, 10, 1, 9, 0),
        ),
        make_call(
            twilio_sid="CA2",
            from_number="+447700900123",
            status=CallStatus.COMPLETED,
            duration=45,
            rating=2,
            created_at=datetime(2026, 10, 5, 14, 0),
        ),
        make_call(twilio_sid="CA3", status=CallStatus.NO_ANSWER, created_at=datetime(2026, 10, 10, 20, 0)),
    ]


def test_list_defaults_newest_first(client, seeded):
    response = client.get("/api/calls")

    assert response.status_code == 200
    body = response.json()
    assert [c["twilioSid"] for c in body["calls"]] == ["CA3", "CA2", "CA1"]
    assert body["pagination"] == {
        "total": 3,
        "page": 1,
        "limit": 20,
        "totalPages": 1,
        "hasNext": False,
        "hasPrev": False,
    }
    assert body["calls"][0]["segmentCount"] == 0


def test_list_pagination(client, seeded):
    body = client.get("/api/calls", params={"limit": 2, "page": 2}).json()

    assert [c["twilioSid"] for c in body["calls"]] == ["CA1"]
    assert body["pagination"]["totalPages"] == 2
    assert body["pagination"]["hasPrev"] is True
    assert body["pagination"]["hasNext"] is False


def test_list_clamps_bad_paging_values(client, seeded):
    body = client.get("/api/calls", params={"limit": 1000, "page": "zero"}).json()

    assert body["pagination"]["limit"] == 100
    assert body["pagination"]["page"] == 1


def test_list_filters_by_status(client, seeded):
    body = client.get("/api/calls", params={"status": "NO_ANSWER"}).json()

    assert [c["twilioSid"] for c in body["calls"]] == ["CA3"]


def test_list_ignores_unknown_status(client, seeded):
    body = client.get("/api/calls", params={"status": "EXPLODED"}).json()

    assert body["pagination"]["total"] == 3


def test_list_filters_by_date_range(client, seeded):
    params = {"startDate": "2026-10-02T00:00:00Z", "endDate": "2026-10-09T23:59:59Z"}

    body = client.get("/api/calls", params=params).json()

    assert [c["twilioSid"] for c in body["calls"]] == ["CA2"]


def test_list_rejects_malformed_date(client, seeded):
    response = client.get("/api/calls", params={"startDate": "last tuesday"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert "startDate" in response.json()["details"]


def test_list_sorts_by_duration(client, seeded):
    body = client.get("/api/calls", params={"sortBy": "duration", "sortOrder": "desc", "status": "COMPLETED"}).json()

    assert [c["duration"] for c in body["calls"]] == [300, 45]


def test_list_search_matches_notes_and_numbers(client, seeded):
    by_notes = client.get("/api/calls", params={"search": "gift CARDS"}).json()
    by_number = client.get("/api/calls", params={"search": "+4477"}).json()

    assert [c["twilioSid"] for c in by_notes["calls"]] == ["CA1"]
    assert [c["twilioSid"] for c in by_number["calls"]] == ["CA2"]


def test_get_call_includes_ordered_segments(client, db, seeded):
    call = seeded[0]
    repo = CallRepository(db)
    repo.add_segment(call.id, Speaker.EARL, "Who is this?", 4.0)
    repo.add_segment(call.id, Speaker.SCAMMER, "This is the IRS.", 1.5)

    response = client.get(f"/api/calls/{call.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == call.id
    assert body["status"] == "COMPLETED"
    assert [s["speaker"] for s in body["segments"]] == ["SCAMMER", "EARL"]
    assert body["segments"][0]["callId"] == call.id


def test_get_unknown_call_is_404(client):
    response = client.get("/api/calls/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Call not found", "code": "NOT_FOUND"}


def test_update_writes_only_present_fields(client, db, seeded):
    call = seeded[0]

    response = client.patch(
        f"/api/calls/{call.id}",
        json={"rating": 3, "tags": [" irs ", "irs", "", "gift-card"], "isPublic": True, "title": "Patton"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["rating"] == 3
    assert body["tags"] == ["irs", "gift-card"]
    assert body["isPublic"] is True
    assert body["notes"] == "IRS agent wanted gift cards"

    db.expire_all()
    stored = db.get(Call, call.id)
    assert stored.title == "Patton"
    assert stored.is_featured is False


def test_update_can_clear_nullable_fields(client, seeded):
    response = client.patch(f"/api/calls/{seeded[0].id}", json={"rating": None, "notes": None})

    assert response.status_code == 200
    assert response.json()["rating"] is None
    assert response.json()["notes"] is None


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"rating": 6}, "rating"),
        ({"rating": 0}, "rating"),
        ({"rating": "5"}, "rating"),
        ({"isPublic": "yes"}, "isPublic"),
        ({"tags": "irs"}, "tags"),
        ({"title": "x" * 201}, "title"),
        ({"persona": "dracula"}, "persona"),
    ],
)
def test_update_rejects_invalid_values(client, seeded, payload, field):
    response = client.patch(f"/api/calls/{seeded[0].id}", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert any(key.startswith(field) for key in body["details"])


@pytest.mark.parametrize("field", ["tags", "isPublic", "isFeatured"])
def test_update_rejects_null_for_required_fields(client, seeded, field):
    response = client.patch(f"/api/calls/{seeded[0].id}", json={field: None})

    assert response.status_code == 400
    assert field in response.json()["details"]


def test_update_unknown_call_is_404(client):
    response = client.patch("/api/calls/nope", json={"rating": 4})

    assert response.status_code == 404


def _with_recording(db, call, url_template):
    key = f"recordings/2026/10/01/{call.id}.mp3"
    CallRepository(db).update_fields(call, recording_url=url_template.format(key=key))
    return key


def test_delete_removes_call_segments_and_recording(client, db, make_call, monkeypatch):
    call = make_call(twilio_sid="CA9")
    call_id = call.id
    key = _with_recording(db, call, "https://cdn.example.com/{key}")
    CallRepository(db).add_segment(call_id, Speaker.SCAMMER, "Hello", 0.0)
    storage = MagicMock()
    monkeypatch.setattr(s3, "get_storage_client", lambda: storage)

    response = client.delete(f"/api/calls/{call_id}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": call_id}
    storage.delete_recording.assert_called_once_with(key)
    db.expire_all()
    assert db.get(Call, call_id) is None
    assert db.query(CallSegment).filter(CallSegment.call_id == call_id).count() == 0
    assert client.get(f"/api/calls/{call_id}").status_code == 404


def test_delete_succeeds_when_recording_cleanup_fails(client, db, make_call, monkeypatch):
    call = make_call(twilio_sid="CA10")
    call_id = call.id
    key = _with_recording(db, call, "https://bucket.s3.amazonaws.com/{key}?X-Amz-Signature=abc")
    storage = MagicMock()
    storage.delete_recording.side_effect = RuntimeError("access denied")
    monkeypatch.setattr(s3, "get_storage_client", lambda: storage)

    response = client.delete(f"/api/calls/{call_id}")

    assert response.status_code == 200
    storage.delete_recording.assert_called_once_with(key)


def test_delete_leaves_recordings_of_other_calls(client, make_call, monkeypatch):
    call = make_call(twilio_sid="CA14", recording_url="https://cdn.example.com/recordings/2026/10/01/someone-else.mp3")
    call_id = call.id
    storage = MagicMock()
    monkeypatch.setattr(s3, "get_storage_client", lambda: storage)

    response = client.delete(f"/api/calls/{call_id}")

    assert response.status_code == 200
    storage.delete_recording.assert_not_called()


def test_delete_unknown_call_is_404(client):
    assert client.delete("/api/calls/nope").status_code == 404


def test_analyze_merges_keyword_tags(client, db, make_call, monkeypatch):
    monkeypatch.setattr("config.settings.settings.gemini_api_key", None)
    call = make_call(twilio_sid="CA11", tags=["favourite"])
    repo = CallRepository(db)
    repo.add_segment(call.id, Speaker.SCAMMER, "This is the IRS, you owe back taxes and must pay immediately.", 0.0)
    repo.add_segment(call.id, Speaker.EARL, "Hold on, let me find my tax audit papers.", 5.0)

    response = client.post(f"/api/calls/{call.id}/analyze")

    assert response.status_code == 200
    body = response.json()
    assert body["scamType"] == "irs"
    assert body["scamTypeLabel"] == "IRS/Tax Scam"
    assert body["updated"] is True
    assert body["tags"][0] == "favourite"
    assert "irs" in body["tags"]
    assert "urgent" in body["tags"]
    db.expire_all()
    assert db.get(Call, call.id).tags == body["tags"]


def test_analyze_without_segments_changes_nothing(client, make_call):
    call = make_call(twilio_sid="CA12", tags=["quiet"])

    body = client.post(f"/api/calls/{call.id}/analyze").json()

    assert body == {
        "id": call.id,
        "scamType": "unknown",
        "scamTypeLabel": "Unknown Type",
        "tags": ["quiet"],
        "confidence": 0.0,
        "updated": False,
    }


def test_preview_analysis_does_not_write(client, db, make_call):
    call = make_call(twilio_sid="CA13")
    CallRepository(db).add_segment(call.id, Speaker.SCAMMER, "Your computer has a virus, Microsoft needs remote access.", 0.0)

    body = client.get(f"/api/calls/{call.id}/analyze").json()

    assert body["scamType"] == "tech_support"
    assert body["scamTypeLabel"] == "Tech Support Scam"
    assert body["updated"] is False
    db.expire_all()
    assert db.get(Call, call.id).tags == []


def test_calls_require_login(app_client, seeded):
    response = app_client.get("/api/calls")

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_REQUIRED"
