"""Custom exception classes for the application."""

from typing import List


class BaseAppException(Exception):
    """Base exception class for all application exceptions."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(BaseAppException):
    """Raised when there's a configuration error."""
    pass


class StorageError(BaseAppException):
    """Raised when the local store cannot be read or written."""
    pass


class NotFoundError(BaseAppException):
    """Raised when a product, invoice or backup does not exist."""
    pass


class AuthenticationError(BaseAppException):
    """Raised when an API key is missing or wrong."""
    pass


class ValidationError(BaseAppException):
    """Raised when a record fails validation."""

    def __init__(self, errors: List[str], details: dict = None):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed", details)


class ProductError(BaseAppException):
    """Base class for product catalogue errors."""
    pass


class InvalidFileFormatError(ProductError):
    """Raised when an import file cannot be decoded."""

    def __init__(self, message: str = "Ogiltigt filformat", details: dict = None):
        super().__init__(message, details)


class EmptyFileError(ProductError):
    """Raised when an import file has no data rows."""

    def __init__(self, message: str = "Filen är tom", details: dict = None):
        super().__init__(message, details)


class CompanyError(BaseAppException):
    """Base class for company management errors."""
    pass


class LastCompanyError(CompanyError):
    """Raised when deleting the only remaining company."""

    def __init__(self, message: str = "Kan inte ta bort det sista företaget", details: dict = None):
        super().__init__(message, details)


class ReportExportError(BaseAppException):
    """Raised when a dashboard report cannot be written."""
    pass
