"""
Ingest Policy Configuration.

Fetch limits and the two policy switches that decide ambiguous inputs:
    - content_type_policy: enforce or only record the image allow-list
    - source_reference_policy: accept or reject a stored key in place of a URL

Exports:
    IngestConfig: Pydantic ingest configuration model
"""

import os
from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field

from core.models.enums import ContentTypePolicy, SourceReferencePolicy
from .defaults import IngestDefaults


class IngestConfig(BaseModel):
    """Ingest policy configuration."""

    model_config = ConfigDict(frozen=True)

    fetch_timeout_seconds: float = Field(default=IngestDefaults.FETCH_TIMEOUT_SECONDS, gt=0, le=300)

    max_redirects: int = Field(default=IngestDefaults.MAX_REDIRECTS, ge=0, le=20)

    deadline_seconds: float = Field(
        default=IngestDefaults.DEADLINE_SECONDS,
        gt=0,
        le=600,
        description="Budget for one ingest or delete when the caller does not pass one"
    )

    allowed_content_types: Tuple[str, ...] = Field(default=IngestDefaults.ALLOWED_CONTENT_TYPES)

    content_type_policy: ContentTypePolicy = Field(default=ContentTypePolicy(IngestDefaults.CONTENT_TYPE_POLICY))

    source_reference_policy: SourceReferencePolicy = Field(
        default=SourceReferencePolicy(IngestDefaults.SOURCE_REFERENCE_POLICY)
    )

    serialize_per_resource: bool = Field(
        default=IngestDefaults.SERIALIZE_PER_RESOURCE,
        description="Hold an in-process lock per resource id for each ingest/delete"
    )

    user_agent: str = Field(default=IngestDefaults.USER_AGENT)

    def debug_dict(self) -> dict:
        return self.model_dump(mode='json')

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            fetch_timeout_seconds=float(os.environ.get(
                "FETCH_TIMEOUT_SECONDS", str(IngestDefaults.FETCH_TIMEOUT_SECONDS)
            )),
            deadline_seconds=float(os.environ.get(
                "INGEST_DEADLINE_SECONDS", str(IngestDefaults.DEADLINE_SECONDS)
            )),
            content_type_policy=ContentTypePolicy(
                os.environ.get("CONTENT_TYPE_POLICY", IngestDefaults.CONTENT_TYPE_POLICY).lower()
            ),
            source_reference_policy=SourceReferencePolicy(
                os.environ.get("SOURCE_REFERENCE_POLICY", IngestDefaults.SOURCE_REFERENCE_POLICY).lower()
            ),
            serialize_per_resource=os.environ.get(
                "SERIALIZE_PER_RESOURCE", str(IngestDefaults.SERIALIZE_PER_RESOURCE)
            ).lower() == "true",
        )
