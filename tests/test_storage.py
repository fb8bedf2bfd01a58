"""Recording storage keys and the S3 client wrapper."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from scambait.storage import s3
from scambait.storage.s3 import StorageClient, extract_call_id_from_key, generate_storage_key, key_from_url
from scambait.utils.errors import ExternalServiceError


@pytest.fixture
def boto_client(monkeypatch):
    client = MagicMock()
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(s3.boto3, "client", factory)
    client.factory = factory
    return client


def test_storage_key_layout():
    key = generate_storage_key("abc-123", now=datetime(2026, 3, 7, 22, 15))

    assert key == "recordings/2026/03/07/abc-123.mp3"
    assert extract_call_id_from_key(key) == "abc-123"


def test_extract_call_id_rejects_other_keys():
    assert extract_call_id_from_key("uploads/abc.mp3") is None
    assert extract_call_id_from_key("recordings/2026/3/7/abc.mp3") is None


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://cdn.example.com/recordings/2026/10/01/a.mp3", "recordings/2026/10/01/a.mp3"),
        (
            "https://bucket.s3.us-east-1.amazonaws.com/recordings/2026/10/01/a.mp3?X-Amz-Expires=604800",
            "recordings/2026/10/01/a.mp3",
        ),
        ("recordings/2026/10/01/a.mp3", "recordings/2026/10/01/a.mp3"),
        ("https://api.twilio.com/Recordings/RE1", None),
        (None, None),
    ],
)
def test_key_from_url(url, expected):
    assert key_from_url(url) == expected


def test_client_requires_region_and_bucket(boto_client):
    with pytest.raises(ExternalServiceError) as exc_info:
        StorageClient(bucket="recordings", region=None)
    assert "AWS_REGION" in exc_info.value.message
    assert exc_info.value.status_code == 503

    with pytest.raises(ExternalServiceError) as exc_info:
        StorageClient(bucket=None, region="us-east-1")
    assert "AWS_BUCKET_NAME" in exc_info.value.message


def test_explicit_keys_only_when_both_set(boto_client):
    StorageClient(bucket="b", region="us-east-1", access_key_id="AKIA", secret_access_key=None)
    StorageClient(bucket="b", region="us-east-1", access_key_id="AKIA", secret_access_key="s", endpoint_url="http://minio:9000")

    first, second = boto_client.factory.call_args_list
    assert first.kwargs == {"region_name": "us-east-1"}
    assert second.kwargs == {
        "region_name": "us-east-1",
        "endpoint_url": "http://minio:9000",
        "aws_access_key_id": "AKIA",
        "aws_secret_access_key": "s",
    }


def test_upload_recording(boto_client):
    storage = StorageClient(bucket="recordings", region="us-east-1")

    key = storage.upload_recording("call-1", b"audio")

    assert key.startswith("recordings/") and key.endswith("/call-1.mp3")
    kwargs = boto_client.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "recordings"
    assert kwargs["Key"] == key
    assert kwargs["Body"] == b"audio"
    assert kwargs["ContentType"] == "audio/mpeg"


def test_upload_failure_is_wrapped(boto_client):
    boto_client.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")
    storage = StorageClient(bucket="recordings", region="us-east-1")

    with pytest.raises(ExternalServiceError) as exc_info:
        storage.upload_recording("call-1", b"audio")

    assert exc_info.value.code == "STORAGE_ERROR"


def test_recording_url_public_base(boto_client):
    storage = StorageClient(bucket="recordings", region="us-east-1", public_base_url="https://cdn.example.com/")

    assert storage.get_recording_url("recordings/x.mp3") == "https://cdn.example.com/recordings/x.mp3"
    boto_client.generate_presigned_url.assert_not_called()


def test_recording_url_presigned(boto_client):
    boto_client.generate_presigned_url.return_value = "https://signed.example.com/recordings/x.mp3?sig=1"
    storage = StorageClient(bucket="recordings", region="us-east-1")

    url = storage.get_recording_url("recordings/x.mp3", expires_in=60)

    assert url == "https://signed.example.com/recordings/x.mp3?sig=1"
    boto_client.generate_presigned_url.assert_called_once_with(
        "get_object", Params={"Bucket": "recordings", "Key": "recordings/x.mp3"}, ExpiresIn=60
    )


def test_delete_recording(boto_client):
    storage = StorageClient(bucket="recordings", region="us-east-1")

    storage.delete_recording("recordings/x.mp3")

    boto_client.delete_object.assert_called_once_with(Bucket="recordings", Key="recordings/x.mp3")
