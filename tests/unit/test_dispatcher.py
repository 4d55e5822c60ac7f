"""
RetryDispatcher tests.

First contact only enqueues; deliveries run the ingest and apply the
bounded retry / backoff policy.
"""

import pytest

from core.models.enums import DeliveryStatus, DispatchStatus
from exceptions import EnqueueFailed, FetchFailed, ValidationFailed
from tests.factories.model_factories import make_task

SOURCE = "https://example.test/img.jpg"


class TestDispatchFirstContact:

    def test_only_enqueues(self, dispatcher, queue, fetcher, journal):
        result = dispatcher.dispatch("42", SOURCE, is_redelivery=False)

        assert result.status == DispatchStatus.QUEUED
        assert result.message_id == "msg-1"
        assert fetcher.calls == []
        assert journal == []

        task, delay = queue.sent[0]
        assert delay == 0
        assert task.resource_id == "42"
        assert task.source_url == SOURCE
        assert task.target == "external-image-urls"
        assert task.attempt == 0
        assert task.retry_limit == 2
        assert task.min_backoff_seconds == 2

    def test_correlation_id_travels_with_task(self, dispatcher, queue):
        dispatcher.dispatch("42", SOURCE, is_redelivery=False, correlation_id="abc12345")
        assert queue.sent[0][0].correlation_id == "abc12345"

    @pytest.mark.parametrize("source", ["products/42", "", "ftp://example.test/a.jpg"])
    def test_non_url_not_queued(self, dispatcher, queue, source):
        with pytest.raises(ValidationFailed):
            dispatcher.dispatch("42", source, is_redelivery=False)
        assert queue.sent == []

    def test_bad_resource_id_not_queued(self, dispatcher, queue):
        with pytest.raises(ValidationFailed):
            dispatcher.dispatch("", SOURCE, is_redelivery=False)
        assert queue.sent == []

    def test_enqueue_failure(self, dispatcher, queue):
        queue.fail = True
        with pytest.raises(EnqueueFailed) as exc_info:
            dispatcher.dispatch("42", SOURCE, is_redelivery=False)
        assert exc_info.value.http_status == 503
        assert exc_info.value.storage_key == "products/42"


class TestDispatchRedelivery:

    def test_runs_ingest_synchronously(self, dispatcher, queue, fetcher, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)

        result = dispatcher.dispatch("42", SOURCE, is_redelivery=True)

        assert result.status == DispatchStatus.COMPLETED
        assert result.serving_url.startswith("https://images.example.com/api/img/")
        assert queue.sent == []

    def test_timeout_reaches_pipeline(self, dispatcher, fetcher, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)
        dispatcher.dispatch("42", SOURCE, is_redelivery=True, timeout_seconds=5)
        assert 0 < fetcher.timeouts[-1] <= 5


class TestHandleDelivery:

    def test_success(self, dispatcher, fetcher, records, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)

        outcome = dispatcher.handle_delivery(make_task(), message_id="m-1")

        assert outcome.status == DeliveryStatus.COMPLETED
        assert outcome.serving_url == records.rows["42"]["display_url"]
        assert not outcome.terminal

    def test_transient_failure_schedules_retry(self, dispatcher, fetcher, queue):
        fetcher.fail(SOURCE, FetchFailed("timed out"))

        outcome = dispatcher.handle_delivery(make_task(attempt=0))

        assert outcome.status == DeliveryStatus.RETRY_SCHEDULED
        assert outcome.next_delay_seconds == 2
        retry, delay = queue.sent[0]
        assert retry.attempt == 1
        assert delay == 2
        assert outcome.retry_message_id == "msg-1"

    def test_backoff_doubles(self, dispatcher, fetcher, queue):
        fetcher.fail(SOURCE, FetchFailed("timed out"))

        outcome = dispatcher.handle_delivery(make_task(attempt=1))

        assert outcome.next_delay_seconds == 4
        assert queue.sent[0][0].attempt == 2

    def test_budget_exhausted(self, dispatcher, fetcher, queue):
        fetcher.fail(SOURCE, FetchFailed("timed out"))

        outcome = dispatcher.handle_delivery(make_task(attempt=2))

        assert outcome.status == DeliveryStatus.EXHAUSTED
        assert outcome.terminal
        assert outcome.error["operation"] == "fetch"
        assert queue.sent == []

    def test_at_most_three_runs(self, dispatcher, fetcher, queue):
        fetcher.fail(SOURCE, FetchFailed("timed out"))

        task = make_task()
        statuses = []
        while True:
            outcome = dispatcher.handle_delivery(task)
            statuses.append(outcome.status)
            if outcome.terminal:
                break
            task = queue.sent[-1][0]

        assert statuses == [
            DeliveryStatus.RETRY_SCHEDULED,
            DeliveryStatus.RETRY_SCHEDULED,
            DeliveryStatus.EXHAUSTED,
        ]
        assert len(fetcher.calls) == 3

    def test_permanent_failure_rejected_without_retry(self, dispatcher, fetcher, queue):
        fetcher.fail(SOURCE, FetchFailed("gone", status_code=404))

        outcome = dispatcher.handle_delivery(make_task())

        assert outcome.status == DeliveryStatus.REJECTED
        assert queue.sent == []

    def test_unknown_record_rejected(self, dispatcher, fetcher, queue, jpeg_bytes):
        fetcher.serve(SOURCE, jpeg_bytes)

        outcome = dispatcher.handle_delivery(make_task(resource_id="999"))

        assert outcome.status == DeliveryStatus.REJECTED
        assert outcome.error["operation"] == "update_record"

    def test_retry_send_failure_propagates(self, dispatcher, fetcher, queue):
        fetcher.fail(SOURCE, FetchFailed("timed out"))
        queue.fail = True

        with pytest.raises(EnqueueFailed):
            dispatcher.handle_delivery(make_task())
