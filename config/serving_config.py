"""
Serving Handle Configuration.

Controls the public serving URLs minted for stored images.

Exports:
    ServingConfig: Pydantic serving configuration model
"""

import os
from urllib.parse import urlsplit
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .defaults import ServingDefaults


class ServingConfig(BaseModel):
    """
    Serving URL configuration.

    base_url is the public prefix of the Function App routes that resolve
    serving tokens, e.g. https://images.example.com/api.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(..., description="Public base URL of the serving routes")

    image_size: int = Field(
        default=ServingDefaults.IMAGE_SIZE,
        ge=1,
        le=4096,
        description="Display size applied to every serving URL"
    )

    secure: bool = Field(default=ServingDefaults.SECURE, description="Serving URLs use https")

    handle_ttl_hours: int = Field(default=ServingDefaults.HANDLE_TTL_HOURS, ge=1, le=24 * 365)

    read_url_minutes: int = Field(
        default=ServingDefaults.READ_URL_MINUTES,
        ge=1,
        le=60 * 24,
        description="Lifetime of the blob SAS a serving URL redirects to"
    )

    @field_validator('base_url')
    @classmethod
    def absolute_base(cls, v: str) -> str:
        parts = urlsplit(v)
        if parts.scheme not in ('http', 'https') or not parts.netloc:
            raise ValueError(f"base_url must be an absolute http(s) URL, got '{v}'")
        return v.rstrip('/')

    @model_validator(mode='after')
    def secure_base(self):
        if self.secure and not self.base_url.startswith('https://'):
            raise ValueError("base_url must use https when secure serving is enabled")
        return self

    def debug_dict(self) -> dict:
        return self.model_dump()

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            base_url=os.environ.get("SERVING_BASE_URL", ""),
            image_size=int(os.environ.get("SERVING_IMAGE_SIZE", str(ServingDefaults.IMAGE_SIZE))),
            secure=os.environ.get("SERVING_SECURE", str(ServingDefaults.SECURE)).lower() == "true",
            handle_ttl_hours=int(os.environ.get("SERVING_HANDLE_TTL_HOURS", str(ServingDefaults.HANDLE_TTL_HOURS))),
            read_url_minutes=int(os.environ.get("SERVING_READ_URL_MINUTES", str(ServingDefaults.READ_URL_MINUTES))),
        )
