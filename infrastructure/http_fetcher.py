# ============================================================================
# HTTP IMAGE FETCHER
# ============================================================================
# STATUS: Infrastructure - outbound HTTP
# PURPOSE: Download an external image and gate its content type
# EXPORTS: HttpImageFetcher, normalize_content_type
# INTERFACES: IImageFetcher
# DEPENDENCIES: httpx
# ============================================================================

"""
HTTP Image Fetcher.

Fetches the bytes of an external image over http(s). Three checks run
in order:

    1. destination key and URL are present (before any request)
    2. the response status is 2xx (redirects are followed) and the body
       is not empty
    3. the content type is on the allow-list; under the ENFORCE policy a
       miss is a permanent FetchFailed, under ADVISORY it is logged and
       recorded on the FetchedImage
"""

from typing import Optional, Tuple

import httpx

from config import IngestConfig
from core.models.enums import ContentTypePolicy
from core.deadline import bounded_timeout
from core.models.image import FetchedImage
from core.source_reference import is_external_url
from exceptions import FetchFailed
from interfaces.repository import IImageFetcher
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "HttpImageFetcher")


def normalize_content_type(header_value: Optional[str]) -> str:
    """'Image/JPEG; charset=binary' -> 'image/jpeg'. Missing header -> ''."""
    if not header_value:
        return ""
    return header_value.split(';', 1)[0].strip().lower()


class HttpImageFetcher(IImageFetcher):
    """httpx implementation of IImageFetcher."""

    def __init__(self, config: IngestConfig, transport: Optional[httpx.BaseTransport] = None):
        """
        Args:
            config: Ingest configuration (timeout, allow-list, policy)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self._transport = transport
        self._allowed: Tuple[str, ...] = tuple(t.lower() for t in config.allowed_content_types)

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            headers={'User-Agent': self.config.user_agent},
            transport=self._transport
        )

    def fetch(self, source_url: str, storage_key: str, timeout: Optional[float] = None) -> FetchedImage:
        """
        Download source_url.

        timeout is the caller's remaining budget; the request gets the
        smaller of it and fetch_timeout_seconds.

        Raises:
            FetchFailed: see module docstring; transport errors and 5xx
                are retryable, 4xx (except 408/429) and rejected content
                types are not
        """
        if not storage_key:
            raise FetchFailed("destination storage key is empty", retryable=False)
        if not is_external_url(source_url):
            raise FetchFailed(
                f"source '{source_url}' is not an absolute http(s) URL",
                storage_key=storage_key,
                retryable=False
            )

        seconds = bounded_timeout(timeout, self.config.fetch_timeout_seconds)
        logger.debug(f"Fetching {source_url} for {storage_key} (timeout {seconds:.1f}s)")
        try:
            with self._client(seconds) as client:
                response = client.get(source_url)
        except httpx.TimeoutException as e:
            raise FetchFailed(
                f"timed out after {seconds:.1f}s fetching {source_url}",
                storage_key=storage_key
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailed(
                f"{type(e).__name__} fetching {source_url}: {e}",
                storage_key=storage_key
            ) from e

        if not response.is_success:
            raise FetchFailed(
                f"{source_url} answered HTTP {response.status_code}",
                status_code=response.status_code,
                storage_key=storage_key
            )

        if not response.content:
            raise FetchFailed(
                f"{source_url} answered HTTP {response.status_code} with an empty body",
                status_code=response.status_code,
                storage_key=storage_key,
                retryable=False
            )

        content_type = normalize_content_type(response.headers.get('content-type'))
        allowed = content_type in self._allowed

        if not allowed:
            if self.config.content_type_policy == ContentTypePolicy.ENFORCE:
                raise FetchFailed(
                    f"content type '{content_type or 'missing'}' from {source_url} is not one of "
                    f"{', '.join(self._allowed)}",
                    status_code=response.status_code,
                    storage_key=storage_key,
                    retryable=False
                )
            logger.warning(
                f"⚠️ Content type '{content_type or 'missing'}' not in allow-list, storing anyway (advisory policy)",
                extra={'custom_dimensions': {
                    'source_url': source_url,
                    'storage_key': storage_key,
                    'content_type': content_type,
                }}
            )

        logger.info(f"✅ Fetched {len(response.content)} bytes ({content_type}) from {source_url}")
        return FetchedImage(
            data=response.content,
            content_type=content_type,
            source_url=source_url,
            content_type_allowed=allowed,
            status_code=response.status_code
        )
