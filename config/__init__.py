# ============================================================================
# CONFIG PACKAGE INIT
# ============================================================================
# STATUS: Core
# PURPOSE: Configuration package exports and the explicit startup loader
# EXPORTS: AppConfig, domain configs, load_config
# DEPENDENCIES: domain config modules
# ============================================================================

"""
Configuration Package - Domain-Specific Configuration Modules

Structure:
    config/
    ├── __init__.py              # This file - exports and load_config
    ├── app_config.py            # Main config (composes domain configs)
    ├── defaults.py              # Default values
    ├── env_validation.py        # Regex validation of env vars
    ├── storage_config.py        # Blob account, container, key root
    ├── database_config.py       # PostgreSQL, record and handle tables
    ├── queue_config.py          # Service Bus ingest queue and retry budget
    ├── serving_config.py        # Serving URL base, size, TTL
    └── ingest_config.py         # Fetch limits and ingest policies

Usage:
    # Once, at startup (function_app.py)
    from config import load_config
    config = load_config()

The AppConfig returned by load_config() is passed to the factory and from there to every component.
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from exceptions import ConfigurationError

from .app_config import AppConfig
from .storage_config import StorageConfig
from .database_config import DatabaseConfig
from .queue_config import QueueConfig
from .serving_config import ServingConfig
from .ingest_config import IngestConfig
from .env_validation import (
    validate_environment,
    log_validation_results,
)


def load_config(logger: Optional[logging.Logger] = None, validate_env: bool = True) -> AppConfig:
    """
    Validate the environment and build the immutable AppConfig.

    Args:
        logger: Logger for validation output (a validator logger if None)
        validate_env: Run the regex env validation first

    Returns:
        Frozen AppConfig

    Raises:
        ConfigurationError: Any env validation error, or a value pydantic rejects
    """
    if logger is None:
        from util_logger import LoggerFactory, ComponentType
        logger = LoggerFactory.create_logger(ComponentType.VALIDATOR, "config")

    if validate_env and not log_validation_results(logger):
        errors = [e for e in validate_environment(include_warnings=False) if e.severity == "error"]
        names = ", ".join(e.var_name for e in errors)
        raise ConfigurationError(f"Invalid environment configuration: {names}")

    try:
        config = AppConfig.from_environment()
    except (PydanticValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.info(
        f"✅ Configuration loaded (environment={config.environment})",
        extra={'custom_dimensions': {'config': config.debug_dict()}}
    )
    return config


__all__ = [
    'AppConfig',
    'StorageConfig',
    'DatabaseConfig',
    'QueueConfig',
    'ServingConfig',
    'IngestConfig',
    'load_config',
    'validate_environment',
    'log_validation_results',
]
