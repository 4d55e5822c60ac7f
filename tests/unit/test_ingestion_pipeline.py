"""
IngestionPipeline tests.

Happy path, step ordering, skip-fetch mode, failure wrapping, and
the guarantee that rejected requests touch no store.
"""

import re

import pytest

from core.models.enums import ContentTypePolicy, SourceKind, SourceReferencePolicy
from exceptions import (
    ContractViolationError,
    FetchFailed,
    HandleCreationFailed,
    PersistFailed,
    RecordUpdateFailed,
    ValidationFailed,
)
from services import IngestionPipeline
from tests.factories.model_factories import make_app_config

SOURCE = "https://example.test/img.jpg"
SERVING_URL = re.compile(r"^https://images\.example\.com/api/img/[A-Za-z0-9_-]+=s450$")


class TestIngestHappyPath:

    def test_resource_42_is_stored_served_and_recorded(self, pipeline, fetcher, object_store, records, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes, "image/jpeg")

        result = pipeline.ingest("42", SOURCE)

        assert SERVING_URL.match(result.serving_url)
        assert object_store.get_object("products/42") == jpeg_bytes
        assert len(object_store.get_object("products/42")) == 1024
        assert records.rows["42"] == {"display_url": result.serving_url, "storage_location": "products/42"}
        assert result.source_kind == SourceKind.EXTERNAL
        assert result.bytes_stored == 1024

    def test_provenance_and_content_type_stored(self, pipeline, fetcher, object_store, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes, "image/jpeg")
        pipeline.ingest("42", SOURCE)

        stored = object_store.objects["products/42"]
        assert stored["metadata"] == {"source": SOURCE}
        assert stored["content_type"] == "image/jpeg"

    def test_steps_run_in_order(self, pipeline, fetcher, journal, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)
        pipeline.ingest("42", SOURCE)

        assert journal == [
            ("put", "products/42"),
            ("mint", "products/42"),
            ("update_record", "42"),
        ]

    def test_fetch_receives_derived_key(self, pipeline, fetcher, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)
        pipeline.ingest("42", SOURCE)
        assert fetcher.calls == [(SOURCE, "products/42")]

    def test_ingest_twice_converges(self, pipeline, fetcher, object_store, records, handles, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)

        first = pipeline.ingest("42", SOURCE)
        second = pipeline.ingest("42", SOURCE)

        assert list(object_store.objects) == ["products/42"]
        assert object_store.get_object("products/42") == jpeg_bytes
        assert records.rows["42"]["display_url"] == second.serving_url
        assert records.rows["42"]["storage_location"] == "products/42"
        assert SERVING_URL.match(first.serving_url)
        # Re-minting replaces the handle for the key
        assert len(handles.handles) == 1


class TestSkipFetch:

    def test_stored_key_only_remints(self, pipeline, fetcher, object_store, journal, jpeg_bytes):
        object_store.objects["products/42"] = {"data": jpeg_bytes, "content_type": "image/jpeg", "metadata": {}}

        result = pipeline.ingest("42", "products/42")

        assert fetcher.calls == []
        assert journal == [("mint", "products/42"), ("update_record", "42")]
        assert result.source_kind == SourceKind.STORED_KEY
        assert result.bytes_stored is None

    def test_stored_key_with_slashes_accepted(self, pipeline, object_store, jpeg_bytes):
        object_store.objects["products/42"] = {"data": jpeg_bytes, "content_type": None, "metadata": {}}
        result = pipeline.ingest("42", "/products/42/")
        assert SERVING_URL.match(result.serving_url)

    def test_missing_object_is_handle_creation_failure(self, pipeline, records):
        with pytest.raises(HandleCreationFailed) as exc_info:
            pipeline.ingest("42", "products/42")

        assert exc_info.value.object_missing is True
        assert exc_info.value.retryable is False
        assert exc_info.value.http_status == 404
        assert records.rows["42"]["display_url"] is None

    def test_other_resources_key_rejected(self, pipeline, object_store, journal, jpeg_bytes):
        object_store.objects["products/43"] = {"data": jpeg_bytes, "content_type": None, "metadata": {}}
        with pytest.raises(ValidationFailed):
            pipeline.ingest("42", "products/43")
        assert journal == []

    def test_reject_policy_refuses_stored_key(self, fetcher, object_store, handles, records, journal, jpeg_bytes):
        config = make_app_config(ingest={"source_reference_policy": SourceReferencePolicy.REJECT})
        pipeline = IngestionPipeline(config, fetcher, object_store, handles, records)
        object_store.objects["products/42"] = {"data": jpeg_bytes, "content_type": None, "metadata": {}}

        with pytest.raises(ValidationFailed):
            pipeline.ingest("42", "products/42")
        assert journal == []


class TestValidation:

    @pytest.mark.parametrize("resource_id", ["", "   ", None, "a/b", "..", "."])
    def test_bad_resource_id_has_no_side_effects(self, pipeline, fetcher, journal, resource_id):
        with pytest.raises(ValidationFailed):
            pipeline.ingest(resource_id, SOURCE)
        assert fetcher.calls == []
        assert journal == []

    @pytest.mark.parametrize("source", ["", "  ", None])
    def test_empty_source_rejected(self, pipeline, fetcher, journal, source):
        with pytest.raises(ValidationFailed):
            pipeline.ingest("42", source)
        assert fetcher.calls == []
        assert journal == []


class TestFailures:

    def test_fetch_404_mutates_nothing(self, pipeline, fetcher, object_store, records, journal):
        fetcher.fail(SOURCE, FetchFailed("not found", status_code=404, storage_key="products/42"))

        with pytest.raises(FetchFailed) as exc_info:
            pipeline.ingest("42", SOURCE)

        assert exc_info.value.resource_id == "42"
        assert exc_info.value.retryable is False
        assert object_store.objects == {}
        assert records.rows["42"]["display_url"] is None
        assert journal == []

    def test_unexpected_fetcher_error_wrapped(self, pipeline, fetcher):
        fetcher.fail(SOURCE, OSError("socket closed"))
        with pytest.raises(FetchFailed) as exc_info:
            pipeline.ingest("42", SOURCE)
        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.retryable is True

    def test_fetcher_returning_raw_bytes_is_a_bug(self, pipeline, fetcher, object_store):
        fetcher.responses[SOURCE] = b"\xff\xd8\xff"
        with pytest.raises(ContractViolationError):
            pipeline.ingest("42", SOURCE)
        assert object_store.objects == {}

    def test_persist_failure(self, pipeline, fetcher, object_store, records, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)
        object_store.fail_put = True

        with pytest.raises(PersistFailed) as exc_info:
            pipeline.ingest("42", SOURCE)

        assert exc_info.value.storage_key == "products/42"
        assert records.rows["42"]["display_url"] is None

    def test_mint_failure_leaves_object(self, pipeline, fetcher, object_store, handles, records, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)
        handles.fail_mint = True

        with pytest.raises(HandleCreationFailed) as exc_info:
            pipeline.ingest("42", SOURCE)

        assert exc_info.value.retryable is True
        assert "products/42" in object_store.objects
        assert records.rows["42"]["display_url"] is None

    def test_unknown_record_is_permanent(self, pipeline, fetcher, jpeg_bytes):
        fetcher.serve("https://example.test/other.jpg", jpeg_bytes)
        with pytest.raises(RecordUpdateFailed) as exc_info:
            pipeline.ingest("999", "https://example.test/other.jpg")
        assert exc_info.value.retryable is False

    def test_record_store_outage_is_retryable(self, pipeline, fetcher, records, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)
        records.fail_update = True
        with pytest.raises(RecordUpdateFailed) as exc_info:
            pipeline.ingest("42", SOURCE)
        assert exc_info.value.retryable is True


class TestContentTypeAdvisory:

    def test_advisory_result_reports_disallowed_type(self, fetcher, object_store, handles, records, jpeg_bytes):
        config = make_app_config(ingest={"content_type_policy": ContentTypePolicy.ADVISORY})
        pipeline = IngestionPipeline(config, fetcher, object_store, handles, records)
        fetcher.serve(SOURCE, jpeg_bytes, "image/webp")

        result = pipeline.ingest("42", SOURCE)

        assert result.content_type == "image/webp"
        assert result.content_type_allowed is False
        assert object_store.objects["products/42"]["content_type"] == "image/webp"


class TestDeadline:

    @staticmethod
    def _budgets(fetcher, object_store, handles, records):
        return [
            fetcher.timeouts[-1],
            dict(object_store.timeouts)["put"],
            dict(handles.timeouts)["mint"],
            dict(records.timeouts)["update_record"],
        ]

    def test_every_call_gets_the_remaining_budget(self, pipeline, fetcher, object_store, handles, records, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)

        pipeline.ingest("42", SOURCE, timeout_seconds=5)

        budgets = self._budgets(fetcher, object_store, handles, records)
        assert all(0 < b <= 5 for b in budgets)
        assert budgets == sorted(budgets, reverse=True)

    def test_configured_deadline_used_by_default(self, fetcher, object_store, handles, records, jpeg_bytes):
        config = make_app_config(ingest={"deadline_seconds": 8})
        pipeline = IngestionPipeline(config, fetcher, object_store, handles, records)
        fetcher.serve(SOURCE, jpeg_bytes)

        pipeline.ingest("42", SOURCE)

        assert all(0 < b <= 8 for b in self._budgets(fetcher, object_store, handles, records))

    def test_exhausted_budget_fails_fetch_without_side_effects(self, pipeline, fetcher, object_store, journal, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)

        with pytest.raises(FetchFailed) as exc_info:
            pipeline.ingest("42", SOURCE, timeout_seconds=0)

        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert fetcher.calls == []
        assert object_store.objects == {}
        assert journal == []

    def test_exhausted_budget_on_remint_is_retryable(self, pipeline, object_store, journal, jpeg_bytes):
        object_store.put_object("products/42", jpeg_bytes, "image/jpeg")
        journal.clear()

        with pytest.raises(HandleCreationFailed) as exc_info:
            pipeline.ingest("42", "products/42", timeout_seconds=0)

        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert journal == []
