"""
AppConfig and load_config() tests.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

import config as config_package
from config import env_validation
from config import AppConfig, QueueConfig, ServingConfig, StorageConfig, load_config
from core.models.enums import ContentTypePolicy, SourceReferencePolicy
from exceptions import ConfigurationError


class TestLoadConfig:

    def test_minimal_environment(self, valid_env):
        config = load_config()

        assert config.storage.images_root == "products"
        assert config.serving.base_url == "https://images.example.com/api"
        assert config.serving.image_size == 450
        assert config.queues.ingest_queue == "external-image-urls"
        assert config.queues.retry_limit == 2
        assert config.queues.min_backoff_seconds == 2
        assert config.ingest.content_type_policy == ContentTypePolicy.ENFORCE
        assert config.ingest.source_reference_policy == SourceReferencePolicy.STORED_KEY
        assert config.ingest.serialize_per_resource is False
        assert config.ingest.deadline_seconds == 120
        assert config.storage.operation_timeout_seconds == 30
        assert config.database.statement_timeout_seconds == 30

    def test_policies_from_environment(self, valid_env):
        valid_env.setenv("CONTENT_TYPE_POLICY", "advisory")
        valid_env.setenv("SOURCE_REFERENCE_POLICY", "REJECT")
        valid_env.setenv("SERIALIZE_PER_RESOURCE", "true")

        config = load_config()

        assert config.ingest.content_type_policy == ContentTypePolicy.ADVISORY
        assert config.ingest.source_reference_policy == SourceReferencePolicy.REJECT
        assert config.ingest.serialize_per_resource is True

    def test_timeouts_from_environment(self, valid_env):
        valid_env.setenv("INGEST_DEADLINE_SECONDS", "45")
        valid_env.setenv("STORAGE_OPERATION_TIMEOUT", "10")
        valid_env.setenv("DB_STATEMENT_TIMEOUT", "2.5")

        config = load_config()

        assert config.ingest.deadline_seconds == 45
        assert config.storage.operation_timeout_seconds == 10
        assert config.database.statement_timeout_seconds == 2.5

    @pytest.mark.parametrize("name", ["INGEST_DEADLINE_SECONDS", "STORAGE_OPERATION_TIMEOUT", "DB_STATEMENT_TIMEOUT"])
    def test_non_positive_timeout_rejected(self, valid_env, name):
        valid_env.setenv(name, "0")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_namespace_from_functions_binding_variable(self, valid_env):
        valid_env.delenv("SERVICE_BUS_NAMESPACE")
        valid_env.setenv("ServiceBusConnection__fullyQualifiedNamespace", "sb1.servicebus.windows.net")
        assert load_config().queues.namespace == "sb1.servicebus.windows.net"

    def test_missing_required_variable_fails(self, valid_env):
        valid_env.delenv("PRODUCT_IMAGES_DIR")
        with pytest.raises(ConfigurationError, match="PRODUCT_IMAGES_DIR"):
            load_config()

    def test_invalid_model_value_fails(self, valid_env):
        valid_env.setenv("INGEST_MIN_BACKOFF_SECONDS", "90")
        valid_env.setenv("INGEST_MAX_BACKOFF_SECONDS", "30")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_config_is_frozen(self, valid_env):
        config = load_config()
        with pytest.raises(ValidationError):
            config.environment = "prod"

    def test_debug_dict_masks_secrets(self, valid_env):
        valid_env.setenv("STORAGE_CONNECTION_STRING", "AccountName=x;AccountKey=secret")
        valid_env.setenv("POSTGRES_PASSWORD", "hunter2")

        dumped = str(load_config().debug_dict())

        assert "secret" not in dumped
        assert "hunter2" not in dumped

    def test_loaded_config_logged_masked(self, valid_env):
        valid_env.setenv("POSTGRES_PASSWORD", "hunter2")
        logger = MagicMock()

        config = load_config(logger=logger, validate_env=False)

        logged = logger.info.call_args.kwargs["extra"]["custom_dimensions"]["config"]
        assert logged == config.debug_dict()
        assert "hunter2" not in str(logged)

    def test_startup_is_the_only_config_entry_point(self):
        assert not hasattr(config_package, "debug_config")
        assert not hasattr(env_validation, "get_validation_summary")
        assert "load_config" in config_package.__all__


class TestDomainConfigs:

    def test_images_root_trimmed(self):
        assert StorageConfig(images_root="/products/images/").images_root == "products/images"

    def test_empty_images_root_rejected(self):
        with pytest.raises(ValidationError):
            StorageConfig(images_root="//")

    def test_secure_serving_requires_https_base(self):
        with pytest.raises(ValidationError):
            ServingConfig(base_url="http://images.example.com/api")
        assert ServingConfig(base_url="http://localhost:7071/api", secure=False).secure is False

    def test_backoff_bounds(self):
        with pytest.raises(ValidationError):
            QueueConfig(min_backoff_seconds=10, max_backoff_seconds=5)

    def test_app_config_composes_domains(self, valid_env):
        config = AppConfig.from_environment()
        assert set(config.debug_dict()) == {
            "environment", "debug_mode", "storage", "database", "queues", "serving", "ingest"
        }


def test_project_root_comes_from_pytest_settings():
    root = Path(__file__).resolve().parents[2]
    assert 'pythonpath = ["."]' in (root / "pyproject.toml").read_text()
    assert "sys.path" not in (root / "tests" / "conftest.py").read_text()
    assert Path(config_package.__file__).resolve().parent == root / "config"
