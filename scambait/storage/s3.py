"""S3 storage for call recordings."""

import re
from datetime import datetime
from functools import lru_cache
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import settings
from scambait.utils.errors import ExternalServiceError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "recordings/"
_KEY_PATTERN = re.compile(r"^recordings/\d{4}/\d{2}/\d{2}/(?P<call_id>[^/]+)\.[A-Za-z0-9]+$")


def generate_storage_key(call_id: str, extension: str = "mp3", now: Optional[datetime] = None) -> str:
    """Build ``recordings/YYYY/MM/DD/<call_id>.<ext>``."""
    now = now or datetime.utcnow()
    return f"{KEY_PREFIX}{now:%Y/%m/%d}/{call_id}.{extension}"


def extract_call_id_from_key(key: str) -> Optional[str]:
    match = _KEY_PATTERN.match(key)
    return match.group("call_id") if match else None


def key_from_url(url: Optional[str]) -> Optional[str]:
    """Recover the storage key from a stored recording URL (public or presigned)."""
    if not url:
        return None
    if url.startswith(KEY_PREFIX):
        return url
    path = urlparse(url).path
    index = path.find(KEY_PREFIX)
    if index == -1:
        return None
    return path[index:]


class StorageClient:
    def __init__(
        self,
        bucket: Optional[str],
        region: Optional[str],
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        if not region:
            raise ExternalServiceError.storage("AWS_REGION environment variable is not set", status_code=503)
        if not bucket:
            raise ExternalServiceError.storage("AWS_BUCKET_NAME environment variable is not set", status_code=503)

        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

        client_kwargs = {"region_name": region}
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
        # Without explicit keys boto3 falls back to its credential chain (IAM role, profile)
        if access_key_id and secret_access_key:
            client_kwargs["aws_access_key_id"] = access_key_id
            client_kwargs["aws_secret_access_key"] = secret_access_key
        self.client = boto3.client("s3", **client_kwargs)

    def upload_recording(self, call_id: str, data: bytes, content_type: str = "audio/mpeg") -> str:
        """Upload recording audio and return its storage key."""
        extension = "wav" if content_type == "audio/wav" else "mp3"
        key = generate_storage_key(call_id, extension)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata={"call-id": call_id},
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Upload of %s to s3://%s failed: %s", key, self.bucket, exc)
            raise ExternalServiceError.storage(f"Failed to upload recording: {exc}") from exc

        logger.info("Uploaded recording for call %s to %s (%d bytes)", call_id, key, len(data))
        return key

    def get_recording_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Public URL when a public base is configured, otherwise a presigned GET URL."""
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in or settings.recording_url_ttl,
            )
        except (BotoCoreError, ClientError) as exc:
            raise ExternalServiceError.storage(f"Failed to sign recording URL: {exc}") from exc

    def delete_recording(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Delete of %s from s3://%s failed: %s", key, self.bucket, exc)
            raise ExternalServiceError.storage(f"Failed to delete recording: {exc}") from exc
        logger.info("Deleted recording %s", key)


@lru_cache(maxsize=1)
def get_storage_client() -> StorageClient:
    return StorageClient(
        bucket=settings.s3_bucket,
        region=settings.aws_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        endpoint_url=settings.s3_endpoint_url,
        public_base_url=settings.s3_public_base_url,
    )
