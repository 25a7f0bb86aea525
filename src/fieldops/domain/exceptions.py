"""Domain exceptions for the order and field telemetry system."""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class FieldOpsDomainException(Exception):
    """Base exception for all domain-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.metadata = metadata or {}
        self.timestamp = datetime.now(timezone.utc)


class ValidationException(FieldOpsDomainException):
    """Raised when input data is malformed or out of its allowed range."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code or "VALIDATION_FAILED", metadata)


class FieldValidationException(ValidationException):
    """Raised when a single field fails validation."""

    def __init__(self, field_name: str, field_value: Any, validation_error: str):
        message = f"Validation failed for {field_name}='{field_value}': {validation_error}"
        super().__init__(
            message,
            "FIELD_VALIDATION",
            {
                "field_name": field_name,
                "field_value": str(field_value),
                "validation_error": validation_error
            }
        )
        self.field_name = field_name
        self.field_value = field_value
        self.validation_error = validation_error


class InvalidArgumentException(FieldOpsDomainException):
    """Raised when an operation receives parameters outside its contract."""

    def __init__(self, argument_name: str, argument_value: Any, reason: str):
        message = f"Invalid argument {argument_name}={argument_value!r}: {reason}"
        super().__init__(
            message,
            "INVALID_ARGUMENT",
            {"argument_name": argument_name, "argument_value": str(argument_value), "reason": reason}
        )
        self.argument_name = argument_name
        self.argument_value = argument_value
        self.reason = reason


class BusinessRuleViolationException(FieldOpsDomainException):
    """Raised when an operation would break an aggregate invariant."""

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, "BUSINESS_RULE_VIOLATION", {"rule": rule, **(metadata or {})})
        self.rule = rule


class EntityNotFoundException(FieldOpsDomainException):
    """Raised when an aggregate cannot be found by its identity."""

    def __init__(self, entity_type: str, entity_id: Any):
        message = f"{entity_type} with ID {entity_id} not found."
        super().__init__(
            message,
            "ENTITY_NOT_FOUND",
            {"entity_type": entity_type, "entity_id": str(entity_id)}
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class MessagingException(FieldOpsDomainException):
    """Exceptions related to message publishing."""
    pass


class UnsupportedPublisherKindException(MessagingException):
    """Raised when a publisher is requested for an unknown broker kind."""

    def __init__(self, kind: Any):
        message = f"Unknown publisher type: {kind}"
        super().__init__(message, "UNSUPPORTED_PUBLISHER_KIND", {"kind": str(kind)})
        self.kind = kind


class TransportException(MessagingException):
    """Raised when a broker or an external API cannot be reached."""

    def __init__(
        self,
        message: str,
        destination: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message,
            "TRANSPORT_FAILED",
            {"destination": destination, **(metadata or {})}
        )
        self.destination = destination
