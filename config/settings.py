"""Application settings and environment configuration."""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a .env file if present
load_dotenv()


class Settings(BaseSettings):
    """Centralized application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    # Application
    environment: str = Field("development", alias="ENVIRONMENT")
    debug: bool = Field(False, alias="DEBUG")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8000, alias="PORT")
    app_version: str = Field("0.1.0", alias="APP_VERSION")
    public_base_url: Optional[str] = Field(None, alias="PUBLIC_BASE_URL")
    voice_stream_url: Optional[str] = Field(None, alias="VOICE_STREAM_URL")

    # Twilio
    twilio_account_sid: Optional[str] = Field(None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[str] = Field(None, alias="TWILIO_AUTH_TOKEN")
    twilio_phone_number: Optional[str] = Field(None, alias="TWILIO_PHONE_NUMBER")
    validate_twilio_in_dev: bool = Field(False, alias="VALIDATE_TWILIO_IN_DEV")

    # Data layer
    database_url: str = Field("sqlite:///./scambait.db", alias="DATABASE_URL")

    # Recording storage (S3 or any S3-compatible endpoint)
    aws_region: Optional[str] = Field(None, alias="AWS_REGION")
    aws_access_key_id: Optional[str] = Field(None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(None, alias="AWS_SECRET_ACCESS_KEY")
    s3_bucket: Optional[str] = Field(None, alias="AWS_BUCKET_NAME")
    s3_endpoint_url: Optional[str] = Field(None, alias="S3_ENDPOINT_URL")
    s3_public_base_url: Optional[str] = Field(None, alias="S3_PUBLIC_BASE_URL")
    recording_url_ttl: int = Field(7 * 24 * 3600, alias="RECORDING_URL_TTL")

    # Dashboard access
    dashboard_password: Optional[str] = Field(None, alias="DASHBOARD_PASSWORD")
    dashboard_password_hash: Optional[str] = Field(None, alias="DASHBOARD_PASSWORD_HASH")
    session_secret: Optional[str] = Field(None, alias="SESSION_SECRET")
    session_max_age: int = Field(7 * 24 * 3600, alias="SESSION_MAX_AGE")
    persona_settings_file: str = Field(".settings.json", alias="PERSONA_SETTINGS_FILE")

    # Gemini (optional transcript classification)
    gemini_api_key: Optional[str] = Field(None, alias="GEMINI_API_KEY")
    gemini_model: str = Field("gemini-2.0-flash", alias="GEMINI_MODEL")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token)

    @property
    def storage_configured(self) -> bool:
        return bool(self.s3_bucket and self.aws_region)

    @property
    def stream_url(self) -> str:
        """Compute the media stream URL Twilio should connect the caller to."""
        if self.voice_stream_url:
            return self.voice_stream_url
        base = self.public_base_url or f"http://{self.host}:{self.port}"
        # Twilio expects secure websocket when using https
        if base.startswith("https://"):
            return base.replace("https://", "wss://", 1) + "/api/voice/stream"
        if base.startswith("http://"):
            return base.replace("http://", "ws://", 1) + "/api/voice/stream"
        return f"wss://{base}/api/voice/stream"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
