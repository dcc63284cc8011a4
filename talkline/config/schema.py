"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class StorageConfig(BaseModel):
    """Object storage the attachments are uploaded to."""
    bucket_url: str = ""  # Full origin, wins over bucket_name/region
    bucket_name: str = ""
    region: str = ""
    api_url: str = "http://localhost:5000/api"  # Fallback origin: {api_url}/uploads
    cdn_domain: str = ""  # Image resize CDN, e.g. "d123.cloudfront.net"
    upload_timeout: float = 60.0

    @property
    def base_url(self) -> str:
        """Origin every canonical path is appended to."""
        if self.bucket_url:
            return self.bucket_url.rstrip("/")
        if self.bucket_name and self.region:
            return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"
        return f"{self.api_url.rstrip('/')}/uploads"


class TransportConfig(BaseModel):
    """Real-time transport channel."""
    url: str = "ws://localhost:5000/ws"
    history_timeout: float = 10.0  # Seconds before a history fetch times out
    connect_timeout: float = 10.0


class ThumbnailConfig(BaseModel):
    """Default resize transform for image thumbnails."""
    width: int = 150
    height: int = 150
    quality: int = 80


class Config(BaseSettings):
    """Root configuration for talkline."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    thumbnails: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
    session_path: str = "~/.talkline/session.json"

    @property
    def session_file(self) -> Path:
        """Get expanded session file path."""
        return Path(self.session_path).expanduser()

    class Config:
        env_prefix = "TALKLINE_"
        env_nested_delimiter = "__"
