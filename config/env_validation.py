# ============================================================================
# ENVIRONMENT VARIABLE VALIDATION
# ============================================================================
# STATUS: Configuration - Startup validation with regex patterns
# PURPOSE: Validate env vars at startup to fail fast with clear error messages
# ============================================================================
"""
Environment Variable Validation Module.

Validates environment variables at startup using regex patterns so a
misconfigured deployment fails before the host accepts traffic, with a
message that says which setting is wrong and how to fix it.

Usage:
    from config.env_validation import validate_environment

    errors = validate_environment()
    for error in errors:
        print(f"{error.var_name}: {error.message}")

Example Validations:
    - SERVING_BASE_URL must be an absolute https URL
    - STORAGE_ACCOUNT_NAME must be lowercase alphanumeric (3-24 chars)
    - CONTENT_TYPE_POLICY must be 'enforce' or 'advisory'
    - one of STORAGE_ACCOUNT_NAME / STORAGE_CONNECTION_STRING must be set

Exports:
    ENV_VAR_RULES: Dict of all validation rules
    REQUIRED_ONE_OF: Groups where at least one variable must be set
    ValidationError: Dataclass for validation errors
    validate_environment: Main validation function
    validate_single_var: Validate one variable
    log_validation_results: Log results, return True when startup may proceed
"""

import os
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Any, Tuple

from .defaults import (
    StorageDefaults,
    DatabaseDefaults,
    QueueDefaults,
    ServingDefaults,
    IngestDefaults,
)


# ============================================================================
# VALIDATION ERROR
# ============================================================================

@dataclass
class ValidationError:
    """Result of a failed environment variable validation."""
    var_name: str
    message: str
    current_value: Optional[str]
    expected_pattern: str
    fix_suggestion: str
    severity: str = "error"  # error, warning

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "var_name": self.var_name,
            "message": self.message,
            "current_value": self._mask_sensitive(self.current_value),
            "expected_pattern": self.expected_pattern,
            "fix_suggestion": self.fix_suggestion,
            "severity": self.severity,
        }

    def _mask_sensitive(self, value: Optional[str]) -> Optional[str]:
        """Mask potentially sensitive values."""
        if value is None:
            return None
        sensitive_keywords = ["password", "secret", "key", "token", "connection"]
        var_lower = self.var_name.lower()
        if any(kw in var_lower for kw in sensitive_keywords):
            return "***MASKED***"
        if len(value) > 30:
            return f"{value[:20]}...({len(value)} chars)"
        return value


# ============================================================================
# VALIDATION RULE DEFINITION
# ============================================================================

@dataclass
class EnvVarRule:
    """
    Validation rule for an environment variable.

    Attributes:
        pattern: Compiled regex pattern for validation
        pattern_description: Human-readable description of expected format
        required: Whether this variable must be set
        fix_suggestion: How to fix if validation fails
        example: Example valid value
        default_value: Default value used if not set (for warning messages)
        warn_on_default: Emit warning when using default value
    """
    pattern: Pattern
    pattern_description: str
    required: bool
    fix_suggestion: str
    example: str
    default_value: Optional[str] = None
    warn_on_default: bool = True


# ============================================================================
# PATTERNS
# ============================================================================

_AZURE_STORAGE_ACCOUNT = re.compile(r"^[a-z0-9]{3,24}$")
_CONTAINER_NAME = re.compile(r"^[a-z0-9](?!.*--)[a-z0-9-]{1,61}[a-z0-9]$")
_KEY_ROOT = re.compile(r"^/?[A-Za-z0-9._-]+(/[A-Za-z0-9._-]+)*/?$")
_SERVICE_BUS_FQDN = re.compile(r"^[a-z0-9][a-z0-9-]*\.servicebus\.[a-z0-9.-]+$", re.IGNORECASE)
_QUEUE_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]{0,259}$")
_HOST = re.compile(r"^(localhost|127\.0\.0\.1|[a-z0-9][a-z0-9.-]*)$", re.IGNORECASE)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_DATABASE_NAME = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]{0,62}$")
_HTTPS_URL = re.compile(r"^https://[a-z0-9][a-z0-9.-]+(:[0-9]+)?(/.*)?$", re.IGNORECASE)
_NON_NEGATIVE_INT = re.compile(r"^[0-9]+$")
_POSITIVE_INT = re.compile(r"^[1-9][0-9]*$")
_POSITIVE_NUMBER = re.compile(r"^([1-9][0-9]*(\.[0-9]+)?|0\.[0-9]*[1-9][0-9]*)$")
_BOOLEAN = re.compile(r"^(true|false)$", re.IGNORECASE)


ENV_VAR_RULES: Dict[str, EnvVarRule] = {
    # =========================================================================
    # STORAGE
    # =========================================================================
    "STORAGE_ACCOUNT_NAME": EnvVarRule(
        pattern=_AZURE_STORAGE_ACCOUNT,
        pattern_description="Lowercase letters and digits, 3-24 characters",
        required=False,
        fix_suggestion="Use the storage account name only, not its URL",
        example="productimages01",
        warn_on_default=False,
    ),
    "IMAGES_CONTAINER": EnvVarRule(
        pattern=_CONTAINER_NAME,
        pattern_description="Lowercase letters, digits and single hyphens, 3-63 characters",
        required=False,
        fix_suggestion="Use a valid blob container name",
        example="product-images",
        default_value=StorageDefaults.IMAGES_CONTAINER,
    ),
    "PRODUCT_IMAGES_DIR": EnvVarRule(
        pattern=_KEY_ROOT,
        pattern_description="Slash separated path segments (letters, digits, '.', '_', '-')",
        required=True,
        fix_suggestion="Set the key prefix stored images live under",
        example="products/images",
    ),
    "STORAGE_OPERATION_TIMEOUT": EnvVarRule(
        pattern=_POSITIVE_INT,
        pattern_description="Positive integer (seconds)",
        required=False,
        fix_suggestion="Use an integer like 30",
        example="30",
        default_value=str(StorageDefaults.OPERATION_TIMEOUT_SECONDS),
        warn_on_default=False,
    ),

    # =========================================================================
    # DATABASE
    # =========================================================================
    "POSTGRES_HOST": EnvVarRule(
        pattern=_HOST,
        pattern_description="Host name or 'localhost'",
        required=True,
        fix_suggestion="Use the server FQDN like 'myserver.postgres.database.azure.com'",
        example="myserver.postgres.database.azure.com",
    ),
    "POSTGRES_DATABASE": EnvVarRule(
        pattern=_DATABASE_NAME,
        pattern_description="Alphanumeric database name (letters, numbers, underscore, hyphen)",
        required=False,
        fix_suggestion="Use a valid PostgreSQL database name",
        example="products",
        default_value=DatabaseDefaults.DATABASE,
    ),
    "POSTGRES_PORT": EnvVarRule(
        pattern=_POSITIVE_INT,
        pattern_description="Positive integer",
        required=False,
        fix_suggestion="Use a valid port number like 5432",
        example="5432",
        default_value=str(DatabaseDefaults.PORT),
        warn_on_default=False,
    ),
    "DB_STATEMENT_TIMEOUT": EnvVarRule(
        pattern=_POSITIVE_NUMBER,
        pattern_description="Positive number of seconds",
        required=False,
        fix_suggestion="Use a number like 30",
        example="30",
        default_value=str(DatabaseDefaults.STATEMENT_TIMEOUT_SECONDS),
        warn_on_default=False,
    ),
    "APP_SCHEMA": EnvVarRule(
        pattern=_IDENTIFIER,
        pattern_description="Plain SQL identifier",
        required=False,
        fix_suggestion="Set the schema holding the product and handle tables",
        example="app",
        default_value=DatabaseDefaults.SCHEMA,
    ),
    "RECORD_TABLE": EnvVarRule(
        pattern=_IDENTIFIER,
        pattern_description="Plain SQL identifier",
        required=False,
        fix_suggestion="Set the product table name",
        example="products",
        default_value=DatabaseDefaults.RECORD_TABLE,
    ),
    "HANDLE_TABLE": EnvVarRule(
        pattern=_IDENTIFIER,
        pattern_description="Plain SQL identifier",
        required=False,
        fix_suggestion="Set the serving handle table name",
        example="serving_handles",
        default_value=DatabaseDefaults.HANDLE_TABLE,
        warn_on_default=False,
    ),
    "USE_MANAGED_IDENTITY": EnvVarRule(
        pattern=_BOOLEAN,
        pattern_description="'true' or 'false'",
        required=False,
        fix_suggestion="Set to true to authenticate to PostgreSQL with an Entra ID token",
        example="true",
        default_value="false",
        warn_on_default=False,
    ),

    # =========================================================================
    # SERVICE BUS
    # =========================================================================
    "SERVICE_BUS_NAMESPACE": EnvVarRule(
        pattern=_SERVICE_BUS_FQDN,
        pattern_description="Must be full FQDN containing .servicebus. (e.g., *.servicebus.windows.net)",
        required=False,
        fix_suggestion="Use full FQDN like 'myservicebus.servicebus.windows.net' (not just 'myservicebus')",
        example="myservicebus.servicebus.windows.net",
        warn_on_default=False,
    ),
    "INGEST_QUEUE_NAME": EnvVarRule(
        pattern=_QUEUE_NAME,
        pattern_description="Service Bus queue name",
        required=False,
        fix_suggestion="Set the queue the ingest trigger listens on",
        example=QueueDefaults.INGEST_QUEUE,
        default_value=QueueDefaults.INGEST_QUEUE,
    ),
    "INGEST_RETRY_LIMIT": EnvVarRule(
        pattern=_NON_NEGATIVE_INT,
        pattern_description="Non-negative integer (additional attempts after the first)",
        required=False,
        fix_suggestion="Use a small integer like 2",
        example="2",
        default_value=str(QueueDefaults.INGEST_RETRY_LIMIT),
    ),
    "INGEST_MIN_BACKOFF_SECONDS": EnvVarRule(
        pattern=_NON_NEGATIVE_INT,
        pattern_description="Non-negative integer seconds",
        required=False,
        fix_suggestion="Use an integer like 2",
        example="2",
        default_value=str(QueueDefaults.INGEST_MIN_BACKOFF_SECONDS),
        warn_on_default=False,
    ),
    "INGEST_MAX_BACKOFF_SECONDS": EnvVarRule(
        pattern=_NON_NEGATIVE_INT,
        pattern_description="Non-negative integer seconds",
        required=False,
        fix_suggestion="Use an integer like 60",
        example="60",
        default_value=str(QueueDefaults.INGEST_MAX_BACKOFF_SECONDS),
        warn_on_default=False,
    ),

    # =========================================================================
    # SERVING
    # =========================================================================
    "SERVING_BASE_URL": EnvVarRule(
        pattern=_HTTPS_URL,
        pattern_description="Absolute https URL of the Function App API root",
        required=True,
        fix_suggestion="Set the public URL serving routes live under, including '/api'",
        example="https://images.example.com/api",
    ),
    "SERVING_IMAGE_SIZE": EnvVarRule(
        pattern=_POSITIVE_INT,
        pattern_description="Positive integer (pixels)",
        required=False,
        fix_suggestion="Use an integer like 450",
        example="450",
        default_value=str(ServingDefaults.IMAGE_SIZE),
        warn_on_default=False,
    ),
    "SERVING_HANDLE_TTL_HOURS": EnvVarRule(
        pattern=_POSITIVE_INT,
        pattern_description="Positive integer (hours)",
        required=False,
        fix_suggestion="Use an integer like 168",
        example="168",
        default_value=str(ServingDefaults.HANDLE_TTL_HOURS),
    ),

    # =========================================================================
    # INGEST POLICY
    # =========================================================================
    "FETCH_TIMEOUT_SECONDS": EnvVarRule(
        pattern=_POSITIVE_NUMBER,
        pattern_description="Positive number of seconds",
        required=False,
        fix_suggestion="Use a number like 30",
        example="30",
        default_value=str(IngestDefaults.FETCH_TIMEOUT_SECONDS),
        warn_on_default=False,
    ),
    "INGEST_DEADLINE_SECONDS": EnvVarRule(
        pattern=_POSITIVE_NUMBER,
        pattern_description="Positive number of seconds",
        required=False,
        fix_suggestion="Use a number below the Functions host timeout, like 120",
        example="120",
        default_value=str(IngestDefaults.DEADLINE_SECONDS),
        warn_on_default=False,
    ),
    "CONTENT_TYPE_POLICY": EnvVarRule(
        pattern=re.compile(r"^(enforce|advisory)$", re.IGNORECASE),
        pattern_description="'enforce' or 'advisory'",
        required=False,
        fix_suggestion="Use 'enforce' to reject non-image content types before storing",
        example="enforce",
        default_value=IngestDefaults.CONTENT_TYPE_POLICY,
    ),
    "SOURCE_REFERENCE_POLICY": EnvVarRule(
        pattern=re.compile(r"^(stored_key|reject)$", re.IGNORECASE),
        pattern_description="'stored_key' or 'reject'",
        required=False,
        fix_suggestion="Use 'reject' to refuse anything that is not an http(s) URL",
        example="stored_key",
        default_value=IngestDefaults.SOURCE_REFERENCE_POLICY,
    ),
    "SERIALIZE_PER_RESOURCE": EnvVarRule(
        pattern=_BOOLEAN,
        pattern_description="'true' or 'false'",
        required=False,
        fix_suggestion="Set to true to serialize ingest/delete per resource id on each instance",
        example="false",
        default_value="false",
        warn_on_default=False,
    ),
}


# At least one variable of each group must be set
REQUIRED_ONE_OF: List[Tuple[str, ...]] = [
    ("STORAGE_ACCOUNT_NAME", "STORAGE_CONNECTION_STRING"),
    ("ServiceBusConnection", "SERVICE_BUS_NAMESPACE", "ServiceBusConnection__fullyQualifiedNamespace"),
]


# ============================================================================
# VALIDATION FUNCTIONS
# ============================================================================

def validate_single_var(
    var_name: str,
    rule: EnvVarRule,
    include_warnings: bool = True
) -> Optional[ValidationError]:
    """
    Validate a single environment variable against its rule.

    Args:
        var_name: Environment variable name
        rule: Validation rule to apply
        include_warnings: Whether to return warnings for vars using defaults

    Returns:
        ValidationError if validation fails or warning if using default, None if passes
    """
    value = os.environ.get(var_name)

    if rule.required and not value:
        return ValidationError(
            var_name=var_name,
            message="Required environment variable not set",
            current_value=value,
            expected_pattern=rule.pattern_description,
            fix_suggestion=f"{rule.fix_suggestion}. Example: {rule.example}",
            severity="error",
        )

    if not value:
        if include_warnings and rule.warn_on_default and rule.default_value is not None:
            return ValidationError(
                var_name=var_name,
                message="Not set, using default value",
                current_value=None,
                expected_pattern=f"Default: {rule.default_value}",
                fix_suggestion=f"Set explicitly or accept default. {rule.fix_suggestion}",
                severity="warning",
            )
        return None

    if not rule.pattern.match(value):
        return ValidationError(
            var_name=var_name,
            message="Invalid format",
            current_value=value,
            expected_pattern=rule.pattern_description,
            fix_suggestion=f"{rule.fix_suggestion}. Example: {rule.example}",
            severity="error",
        )

    return None


def validate_one_of(group: Tuple[str, ...]) -> Optional[ValidationError]:
    """Error when none of the variables in ``group`` is set."""
    if any(os.environ.get(name) for name in group):
        return None
    return ValidationError(
        var_name=" | ".join(group),
        message="None of these environment variables is set",
        current_value=None,
        expected_pattern="At least one must be set",
        fix_suggestion=f"Set {group[0]} (or one of the alternatives)",
        severity="error",
    )


def validate_environment(
    rules: Optional[Dict[str, EnvVarRule]] = None,
    include_warnings: bool = True
) -> List[ValidationError]:
    """
    Validate all environment variables against their rules.

    Args:
        rules: Optional custom rules dict (defaults to ENV_VAR_RULES)
        include_warnings: Whether to include warnings for vars using defaults

    Returns:
        List of ValidationError objects (errors and optionally warnings)
    """
    use_groups = rules is None
    if rules is None:
        rules = ENV_VAR_RULES

    results = []
    for var_name, rule in rules.items():
        result = validate_single_var(var_name, rule, include_warnings=include_warnings)
        if result:
            results.append(result)

    if use_groups:
        for group in REQUIRED_ONE_OF:
            result = validate_one_of(group)
            if result:
                results.append(result)

    return results


def log_validation_results(logger) -> bool:
    """
    Log validation results at appropriate levels.

    Logs errors at ERROR level, warnings at WARNING level.

    Returns:
        True if no errors (warnings are OK), False otherwise
    """
    all_results = validate_environment(include_warnings=True)

    errors = [r for r in all_results if r.severity == "error"]
    warnings = [r for r in all_results if r.severity == "warning"]

    for error in errors:
        logger.error(
            f"ENV VAR ERROR: {error.var_name} - {error.message}",
            extra={'custom_dimensions': error.to_dict()}
        )

    if warnings:
        logger.warning(f"ENV VARS: {len(warnings)} optional variables using defaults:")
        for warning in warnings:
            default_val = warning.expected_pattern.replace("Default: ", "")
            logger.warning(f"  {warning.var_name} → {default_val}")

    if errors:
        logger.error(f"❌ STARTUP_FAILED: {len(errors)} environment variable errors")
        return False

    logger.info(f"✅ Environment validation passed ({len(warnings)} vars using defaults)")
    return True


__all__ = [
    "ENV_VAR_RULES",
    "REQUIRED_ONE_OF",
    "EnvVarRule",
    "ValidationError",
    "validate_environment",
    "validate_single_var",
    "validate_one_of",
    "log_validation_results",
]
