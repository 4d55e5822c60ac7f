"""
Source reference classification tests.
"""

import pytest

from core.models.enums import SourceKind, SourceReferencePolicy
from core.models.image import ResourceRef
from core.source_reference import classify_source, is_external_url
from exceptions import ValidationFailed

REF = ResourceRef.create("42", "products")


@pytest.mark.parametrize("value, expected", [
    ("https://example.test/img.jpg", True),
    ("HTTP://example.test/img.jpg", True),
    ("products/42", False),
    ("//example.test/img.jpg", False),
    ("ftp://example.test/img.jpg", False),
    ("", False),
    (None, False),
])
def test_is_external_url(value, expected):
    assert is_external_url(value) is expected


class TestStoredKeyPolicy:

    policy = SourceReferencePolicy.STORED_KEY

    def test_url_is_external(self):
        assert classify_source("https://example.test/img.jpg", REF, self.policy) == SourceKind.EXTERNAL

    def test_own_key_is_stored(self):
        assert classify_source("products/42", REF, self.policy) == SourceKind.STORED_KEY

    def test_foreign_key_rejected(self):
        with pytest.raises(ValidationFailed) as exc_info:
            classify_source("products/43", REF, self.policy)
        assert exc_info.value.resource_id == "42"

    def test_bare_id_is_not_a_key(self):
        with pytest.raises(ValidationFailed):
            classify_source("42", REF, self.policy)


class TestRejectPolicy:

    policy = SourceReferencePolicy.REJECT

    def test_url_is_external(self):
        assert classify_source("https://example.test/img.jpg", REF, self.policy) == SourceKind.EXTERNAL

    def test_own_key_rejected(self):
        with pytest.raises(ValidationFailed):
            classify_source("products/42", REF, self.policy)


@pytest.mark.parametrize("policy", list(SourceReferencePolicy))
def test_empty_reference_rejected(policy):
    with pytest.raises(ValidationFailed):
        classify_source("  ", REF, policy)
