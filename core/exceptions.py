"""
Custom exceptions for the inventory client
"""

from typing import Optional, Dict, Any


class InventoryClientError(Exception):
    """Base exception for all inventory client errors"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(InventoryClientError):
    """Raised when a form fails local field validation"""
    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        fields = ", ".join(sorted(self.field_errors))
        super().__init__(f"Invalid fields: {fields}", {"field_errors": self.field_errors})


class NetworkError(InventoryClientError):
    """Raised when a request to the inventory service fails"""
    def __init__(self, message: str, status: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status = status
        super().__init__(message, details)


class BusinessRuleRejection(NetworkError):
    """Raised when the service rejects a request on a business rule (e.g. insufficient stock)"""
    pass


class TokenDecodeError(InventoryClientError):
    """Raised when a session token cannot be decoded"""
    pass


class ConfigValidationError(InventoryClientError):
    """Raised when configuration validation fails"""
    pass
