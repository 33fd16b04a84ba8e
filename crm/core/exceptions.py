"""
Custom exceptions for the CRM service.

Services raise these; the API layer maps them to HTTP responses
(see crm.api.error_handlers).
"""
from typing import Optional


class CrmException(Exception):
    """Base exception for every error raised by the system."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(CrmException):
    """Document store (Supabase) error."""
    pass


class ExternalAPIError(CrmException):
    """External API error (message vendor, LLM)."""

    def __init__(
        self,
        message: str,
        service: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.service = service
        super().__init__(message, details, original_error)


class ValidationError(CrmException):
    """Invalid input data."""
    pass


class NotFoundError(CrmException):
    """Resource not found."""

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None
    ):
        message = f"{resource} not found"
        details = {}
        if identifier:
            details["id"] = identifier
        super().__init__(message, details)


class ConflictError(CrmException):
    """Request conflicts with the current state of a resource."""
    pass


class ConfigurationError(CrmException):
    """System configuration error."""
    pass


# =============================================================================
# Audience rules
# =============================================================================


class RuleError(ValidationError):
    """A rule tree cannot be compiled into a customer filter."""
    pass


class InvalidRuleValue(RuleError):
    """Condition value cannot be parsed for its operator or data type."""

    def __init__(self, field: str, operator: str, value, reason: str):
        super().__init__(
            f"Invalid value for {field} {operator}: {value!r} ({reason})",
            details={"field": field, "operator": operator, "value": str(value)},
        )


class UnsupportedOperator(RuleError):
    """Operator is not valid for the field's type."""

    def __init__(self, field: str, operator: str):
        super().__init__(
            f"Unsupported operator {operator} for field {field}",
            details={"field": field, "operator": operator},
        )


class RuleDepthExceeded(RuleError):
    """Rule groups are nested deeper than allowed."""

    def __init__(self, max_depth: int):
        super().__init__(
            f"Rule groups nested deeper than {max_depth} levels",
            details={"max_depth": max_depth},
        )


# =============================================================================
# Campaign delivery
# =============================================================================


class LogNotFound(NotFoundError):
    """Delivery receipt refers to a communication log that does not exist."""

    def __init__(self, log_id: str):
        super().__init__("Communication log", log_id)


class DuplicateKey(ConflictError):
    """Unique key already taken."""

    def __init__(self, resource: str, key: str, value: str):
        super().__init__(
            f"{resource} with {key} '{value}' already exists",
            details={"resource": resource, "key": key, "value": value},
        )


class DuplicateName(DuplicateKey):
    """Unique name already taken."""

    def __init__(self, resource: str, name: str):
        super().__init__(resource, "name", name)


class CampaignStateConflict(ConflictError):
    """Dispatch attempted on a campaign that is SENDING or COMPLETED."""

    def __init__(self, campaign_id: str, status: str):
        super().__init__(
            f"Campaign is already {status.lower()}",
            details={"campaign_id": campaign_id, "status": status},
        )


class VendorDispatchError(ExternalAPIError):
    """Outbound request to the message vendor failed."""

    def __init__(
        self,
        message: str,
        log_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {"log_id": log_id} if log_id else {}
        super().__init__(message, "vendor", details, original_error)
