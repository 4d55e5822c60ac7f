"""
Core Domain Components.

Pure building blocks shared by the pipelines: no Azure SDK, no
database driver, no HTTP client.

Structure:
    models/: Pure data structures
    source_reference.py: Classify a caller-supplied source reference
    serving_url.py: Build and parse serving URLs
    deadline.py: Time budget shared by the I/O calls of one pipeline run

Exports:
    classify_source: Decide fetch vs skip-fetch for a source reference
    build_serving_url, parse_serving_path: Serving URL helpers
"""

from . import models
from .deadline import Deadline, bounded_timeout
from .source_reference import classify_source, is_external_url
from .serving_url import build_serving_url, parse_serving_path

__all__ = [
    'models',
    'Deadline',
    'bounded_timeout',
    'classify_source',
    'is_external_url',
    'build_serving_url',
    'parse_serving_path',
]
