"""
Root conftest.py - env vars and shared fixtures.

Sets up the test environment so all production code can be imported
without database connections or Azure credentials. The project root is
importable through the pytest pythonpath setting in pyproject.toml.
"""

import os

import pytest


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables so config loading works without Azure.
    """
    defaults = {
        "PRODUCT_IMAGES_DIR": "products",
        "STORAGE_ACCOUNT_NAME": "testimages",
        "POSTGRES_HOST": "localhost",
        "POSTGRES_DATABASE": "testdb",
        "APP_SCHEMA": "app",
        "SERVICE_BUS_NAMESPACE": "test.servicebus.windows.net",
        "SERVING_BASE_URL": "https://images.example.com/api",
        "ENVIRONMENT": "dev",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def jpeg_bytes():
    """1024 bytes that start like a JPEG."""
    header = b"\xff\xd8\xff\xe0"
    return header + bytes(1024 - len(header))
