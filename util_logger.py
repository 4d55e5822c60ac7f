"""
Unified Logger System.

JSON-only structured logging for the image serving Function App with
Application Insights.

Design Principles:
    - Strong typing with dataclasses (stdlib only)
    - Enum safety for categories
    - Component-specific loggers
    - Clean factory pattern

Exports:
    ComponentType: Enum for component types
    LogLevel: Enum for log levels
    LogContext: Correlation context for one resource / message
    ComponentConfig: Per-component logging settings
    JSONFormatter: Application Insights friendly formatter
    LoggerFactory: Factory for creating loggers
    log_checkpoint: Emit a named pipeline checkpoint
    log_exceptions: Exception logging decorator
    new_correlation_id: Short request/correlation id

Dependencies:
    Standard library only (logging, enum, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import sys
import os
import json
import traceback
import uuid
from functools import wraps


# ============================================================================
# COMPONENT TYPES - Aligned with layered architecture
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the layers of the app.

    Each layer has specific logging needs and levels.
    """
    TRIGGER = "trigger"        # HTTP and Service Bus entry points
    SERVICE = "service"        # Ingestion / deletion / dispatch pipelines
    REPOSITORY = "repository"  # PostgreSQL and Blob access
    ADAPTER = "adapter"        # Outbound HTTP and queue integration
    FACTORY = "factory"        # Wiring of adapters and services
    VALIDATOR = "validator"    # Environment and input validation


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across one ingest/delete run.

    Fields left as None are omitted from the emitted custom dimensions.
    """
    resource_id: Optional[str] = None
    storage_key: Optional[str] = None

    # Request correlation
    correlation_id: Optional[str] = None
    request_id: Optional[str] = None

    # Queue delivery
    message_id: Optional[str] = None
    delivery_attempt: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'resource_id': self.resource_id,
                'storage_key': self.storage_key,
                'correlation_id': self.correlation_id,
                'request_id': self.request_id,
                'message_id': self.message_id,
                'delivery_attempt': self.delivery_attempt,
            }.items() if v is not None
        }


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO


# ============================================================================
# JSON FORMATTER - Structured logging for Azure Functions
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.
    Outputs logs in a format that Application Insights can automatically parse.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON for Application Insights.

        Args:
            record: Python LogRecord to format

        Returns:
            JSON string with structured log data
        """
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.SERVICE,
            "IngestionPipeline"
        )
        logger.info("Ingest started")
    """

    # DEBUG_LOGGING is read here because loggers exist before AppConfig does
    _default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.TRIGGER: ComponentConfig(ComponentType.TRIGGER, _default_level),
        ComponentType.SERVICE: ComponentConfig(ComponentType.SERVICE, _default_level),
        ComponentType.REPOSITORY: ComponentConfig(ComponentType.REPOSITORY, _default_level),
        ComponentType.ADAPTER: ComponentConfig(ComponentType.ADAPTER, _default_level),
        ComponentType.FACTORY: ComponentConfig(ComponentType.FACTORY, _default_level),
        ComponentType.VALIDATOR: ComponentConfig(ComponentType.VALIDATOR, _default_level),
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "IngestionPipeline")
            context: Optional log context for correlation
            config: Optional custom configuration

        Returns:
            Configured Python logger
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # One JSON handler per logger even when create_logger is called repeatedly
        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        # Allow propagation to Azure's root logger for Application Insights
        logger.propagate = True

        if not hasattr(logger, '_context_wrapped'):
            original_log = logger._log

            def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
                """Inject component and context as custom dimensions."""
                if extra is None:
                    extra = {}

                custom_dims = context.to_dict() if context else {}
                custom_dims['component_type'] = component_type.value
                custom_dims['component_name'] = name

                if 'custom_dimensions' in extra:
                    custom_dims.update(extra['custom_dimensions'])

                extra['custom_dimensions'] = custom_dims

                original_log(level, msg, args, exc_info=exc_info, extra=extra,
                             stack_info=stack_info, stacklevel=stacklevel + 1)

            logger._log = log_with_context
            logger._context_wrapped = True

        return logger


def new_correlation_id() -> str:
    """Short id used for request ids and log correlation."""
    return str(uuid.uuid4())[:8]


def log_checkpoint(
    logger: logging.Logger,
    checkpoint: str,
    message: str,
    level: LogLevel = LogLevel.INFO,
    context: Optional[LogContext] = None,
    **dimensions: Any
) -> None:
    """
    Emit a named pipeline checkpoint.

    Checkpoints are the searchable markers in Application Insights
    (customDimensions.checkpoint == 'INGEST_PERSISTED' etc.).
    """
    custom_dims: Dict[str, Any] = {'checkpoint': checkpoint}
    if context:
        custom_dims.update(context.to_dict())
    custom_dims.update({k: v for k, v in dimensions.items() if v is not None})
    logger.log(level.to_python_level(), message, extra={'custom_dimensions': custom_dims})


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to log exceptions with full context and re-raise them.

    Can be used in three ways:
    1. With existing logger: @log_exceptions(logger=my_logger)
    2. With component info: @log_exceptions(ComponentType.SERVICE, "DeletionPipeline")
    3. Simple: @log_exceptions() - uses function module and name
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if logger:
                log = logger
            elif component_type and component_name:
                log = LoggerFactory.create_logger(component_type, component_name)
            else:
                log = LoggerFactory.create_logger(
                    ComponentType.SERVICE,
                    func.__module__ or "unknown"
                )

            try:
                return func(*args, **kwargs)
            except Exception as e:
                log.error(
                    f"❌ Exception in {func.__name__}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'exception_message': str(e),
                            'function_args': str(args)[:500],
                            'function_kwargs': str(kwargs)[:500],
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator
