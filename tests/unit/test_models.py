"""
Domain model tests: ResourceRef, IngestTaskMessage, results.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.models import (
    DeliveryOutcome,
    DeliveryStatus,
    FetchedImage,
    IngestedImage,
    IngestResult,
    IngestTaskMessage,
    ResourceRef,
    ServingHandle,
    SourceKind,
)
from exceptions import ValidationFailed
from tests.factories.model_factories import make_task


class TestResourceRef:

    def test_storage_key_is_root_plus_id(self):
        ref = ResourceRef.create("42", "products")
        assert ref.storage_key == "products/42"

    def test_id_is_trimmed(self):
        assert ResourceRef.create("  42 ", "products").resource_id == "42"

    def test_storage_key_recomputed_from_fields(self):
        ref = ResourceRef.create("42", "products/images/")
        assert ref.storage_key == "products/images/42"

    def test_frozen(self):
        ref = ResourceRef.create("42", "products")
        with pytest.raises(AttributeError):
            ref.resource_id = "43"

    @pytest.mark.parametrize("bad", ["", " ", None, "a/b", "a\\b", ".", ".."])
    def test_rejected_ids(self, bad):
        with pytest.raises(ValidationFailed):
            ResourceRef.create(bad, "products")

    def test_dots_inside_id_allowed(self):
        assert ResourceRef.create("sku.v2", "products").storage_key == "products/sku.v2"


class TestIngestedImage:

    def test_from_fetch_carries_fetch_fields(self):
        fetched = FetchedImage(data=b"abc", content_type="image/png", source_url="https://a.test/x.png",
                               content_type_allowed=True)
        image = IngestedImage.from_fetch(fetched, "products/1")
        assert image.data == b"abc"
        assert image.serving_url is None
        assert image.provenance_metadata() == {"source": "https://a.test/x.png"}


class TestServingHandle:

    def test_expiry(self):
        now = datetime.now(timezone.utc)
        handle = ServingHandle(token="t", storage_key="products/1", size=450, secure=True,
                               expires_at=now + timedelta(minutes=1))
        assert not handle.is_expired(now)
        assert handle.is_expired(now + timedelta(minutes=2))


class TestIngestTaskMessage:

    def test_json_round_trip_preserves_budget(self):
        task = make_task(attempt=1, correlation_id="abcd1234")
        restored = IngestTaskMessage.model_validate_json(task.model_dump_json())
        assert restored == task

    @pytest.mark.parametrize("url", ["products/42", "ftp://a.test/x", "https://", ""])
    def test_source_url_must_be_absolute_http(self, url):
        with pytest.raises(ValidationError):
            make_task(source_url=url)

    def test_blank_resource_id_rejected(self):
        with pytest.raises(ValidationError):
            make_task(resource_id="   ")

    @pytest.mark.parametrize("attempt, expected", [(0, 2), (1, 4), (2, 8), (5, 60), (9, 60)])
    def test_backoff_capped(self, attempt, expected):
        task = make_task(attempt=attempt, retry_limit=10)
        assert task.backoff_seconds() == expected

    def test_next_attempt_increments_only_attempt(self):
        task = make_task()
        retry = task.next_attempt()
        assert retry.attempt == 1
        assert retry.resource_id == task.resource_id
        assert retry.retry_limit == task.retry_limit
        assert task.attempt == 0

    def test_retries_remaining(self):
        assert make_task(attempt=0).retries_remaining == 2
        assert make_task(attempt=2).retries_remaining == 0

    def test_frozen(self):
        task = make_task()
        with pytest.raises(ValidationError):
            task.attempt = 3


class TestResults:

    def test_ingest_result_response(self):
        result = IngestResult(resource_id="42", storage_key="products/42",
                              serving_url="https://images.example.com/api/img/t=s450",
                              source_kind=SourceKind.STORED_KEY)
        body = result.to_response()
        assert body["fetched"] is False
        assert body["serving_url"].endswith("=s450")

    @pytest.mark.parametrize("status, terminal", [
        (DeliveryStatus.COMPLETED, False),
        (DeliveryStatus.RETRY_SCHEDULED, False),
        (DeliveryStatus.EXHAUSTED, True),
        (DeliveryStatus.REJECTED, True),
    ])
    def test_delivery_terminal(self, status, terminal):
        assert DeliveryOutcome(status=status, resource_id="42", attempt=0).terminal is terminal
