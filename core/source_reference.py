"""
Source Reference Classification.

A create request names either an external URL to fetch or an object
that is already stored. Which of the two a value means, and whether the
second form is accepted at all, is decided here and nowhere else.

Exports:
    is_external_url: True for an absolute http(s) URL
    classify_source: SourceKind for a (source, resource) pair under a policy
"""

from typing import Optional
from urllib.parse import urlparse

from exceptions import ValidationFailed
from core.models.enums import SourceKind, SourceReferencePolicy
from core.models.image import ResourceRef


def is_external_url(source: Optional[str]) -> bool:
    if not source:
        return False
    parsed = urlparse(source.strip())
    return parsed.scheme.lower() in ('http', 'https') and bool(parsed.netloc)


def classify_source(
    source: Optional[str],
    ref: ResourceRef,
    policy: SourceReferencePolicy
) -> SourceKind:
    """
    Classify a source reference for an ingest of ``ref``.

    Args:
        source: externalImageURL value from the caller
        ref: Resource being ingested
        policy: How to treat values that are not http(s) URLs

    Returns:
        SourceKind.EXTERNAL for an http(s) URL, SourceKind.STORED_KEY for
        the resource's own storage key under the STORED_KEY policy

    Raises:
        ValidationFailed: Empty reference, a non-URL under the REJECT
            policy, or a stored key that is not this resource's key
    """
    if source is None or not source.strip():
        raise ValidationFailed(
            "source reference is required",
            resource_id=ref.resource_id,
            storage_key=ref.storage_key
        )

    if is_external_url(source):
        return SourceKind.EXTERNAL

    if policy == SourceReferencePolicy.REJECT:
        raise ValidationFailed(
            f"source reference '{source}' is not an absolute http(s) URL",
            resource_id=ref.resource_id,
            storage_key=ref.storage_key
        )

    # Only the resource's own key may be re-served; any other key would
    # bind this record to another record's object.
    if source.strip().strip('/') != ref.storage_key:
        raise ValidationFailed(
            f"stored key '{source}' does not belong to resource '{ref.resource_id}'",
            resource_id=ref.resource_id,
            storage_key=ref.storage_key
        )
    return SourceKind.STORED_KEY
