#!/usr/bin/env python3.11
"""
Standardized error handling for the print bridge.
This module provides the error taxonomy and consistent error handling and logging mechanisms.
"""
import logging
import traceback
from typing import Dict, Any, Optional, Callable, Type
from functools import wraps
from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

# Configure logger
logger = logging.getLogger(__name__)

# Error codes
class ErrorCodes:
    """Standardized error codes for the application."""
    # General errors (1000-1999)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    INVALID_INPUT = 1002
    PAYLOAD_TOO_LARGE = 1003

    # API errors (2000-2999)
    RATE_LIMIT_EXCEEDED = 2001
    AUTHENTICATION_FAILED = 2002

    # Thermal printer errors (3000-3999)
    PRINTER_CONNECTION_ERROR = 3000
    PRINTER_COMMUNICATION_ERROR = 3001
    PRINTER_NOT_FOUND = 3002
    PRINTER_OPEN_FAILED = 3003
    PRINTER_TIMEOUT = 3004
    PRINTER_RETRIES_EXHAUSTED = 3005

class AppError(Exception):
    """Base exception class for application-specific errors."""

    def __init__(self,
                 message: str,
                 code: int = ErrorCodes.UNKNOWN_ERROR,
                 details: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        """
        Initialize the application error.

        Args:
            message: Human-readable error message
            code: Numeric error code for categorization and lookup
            details: Additional structured information about the error
            original_exception: The original exception that caused this error, if any
        """
        self.message = message
        self.code = code
        self.details = details or {}
        self.original_exception = original_exception

        # Include original exception info in details if available
        if original_exception:
            if 'original_exception' not in self.details:
                self.details['original_exception'] = {
                    'type': type(original_exception).__name__,
                    'message': str(original_exception)
                }

        super().__init__(self.message)

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        """Convert the error to a dictionary representation."""
        error_dict = {
            'success': False,
            'error': {
                'code': self.code,
                'message': self.message
            }
        }

        if self.details and include_details:
            error_dict['error']['details'] = self.details

        return error_dict

class ValidationError(AppError):
    """Error raised when validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        super().__init__(message, ErrorCodes.INVALID_INPUT, details, original_exception)

class ConfigurationError(AppError):
    """Error raised when there's a configuration issue. Never retried."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        super().__init__(message, ErrorCodes.CONFIGURATION_ERROR, details, original_exception)

class AuthenticationError(AppError):
    """Error raised when a request carries an invalid or missing API key."""

    def __init__(self, message: str = "Invalid or missing API key", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCodes.AUTHENTICATION_FAILED, details)

class RateLimitError(AppError):
    """Error raised when a client exceeds its request allowance."""

    def __init__(self, message: str, retry_after: int, details: Optional[Dict[str, Any]] = None):
        self.retry_after = retry_after
        details = dict(details or {})
        details.setdefault('retry_after', retry_after)
        super().__init__(message, ErrorCodes.RATE_LIMIT_EXCEEDED, details)

class PayloadTooLargeError(AppError):
    """Error raised when the request body exceeds the configured limit."""

    def __init__(self, message: str = "Request payload too large. Maximum size is 1MB."):
        super().__init__(message, ErrorCodes.PAYLOAD_TOO_LARGE)

class PrinterError(AppError):
    """Error raised when thermal printer operations fail."""

    def __init__(self,
                 message: str,
                 code: int = ErrorCodes.PRINTER_CONNECTION_ERROR,
                 details: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        super().__init__(message, code, details, original_exception)

class NoDeviceFound(PrinterError):
    """Device discovery returned no candidates."""

    def __init__(self, message: str = "No USB printer found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCodes.PRINTER_NOT_FOUND, details)

class PrintFailed(PrinterError):
    """A step of the print sequence failed."""

    def __init__(self,
                 message: str,
                 code: int = ErrorCodes.PRINTER_COMMUNICATION_ERROR,
                 details: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        super().__init__(message, code, details, original_exception)

class OpenFailed(PrintFailed):
    """The printer channel could not be opened."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        super().__init__(message, ErrorCodes.PRINTER_OPEN_FAILED, details, original_exception)

class EmissionFailed(PrintFailed):
    """Sending commands to an open printer raised."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        super().__init__(message, ErrorCodes.PRINTER_COMMUNICATION_ERROR, details, original_exception)

class PrintTimeout(PrinterError):
    """The print sequence did not finish before its deadline."""

    def __init__(self, message: str = "Printer operation timeout", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCodes.PRINTER_TIMEOUT, details)

class RetryExhausted(PrinterError):
    """A transient failure persisted through every retry."""

    def __init__(self, label: str, retries: int, last_error: Exception):
        self.retries = retries
        self.last_error = last_error
        message = f"{label} failed after {retries} retries: {last_error}"
        super().__init__(message, ErrorCodes.PRINTER_RETRIES_EXHAUSTED, {'retries': retries}, last_error)

def handle_exception(exc: Exception, log_level: int = logging.ERROR) -> Dict[str, Any]:
    """
    Handle an exception and return a standardized error response.

    Args:
        exc: The exception to handle
        log_level: The logging level to use (default: ERROR)

    Returns:
        Standardized error response dictionary
    """
    # Handle AppError instances directly
    if isinstance(exc, AppError):
        logger.log(log_level, f"{type(exc).__name__}: {exc.message}", exc_info=True)
        return exc.to_dict()

    # Extract additional details from the exception
    details = {
        'exception_type': type(exc).__name__,
        'traceback': traceback.format_exc()
    }

    # Log the error
    logger.log(log_level, f"Unhandled exception: {type(exc).__name__}: {str(exc)}", exc_info=True)

    # Return standardized error format
    return {
        'success': False,
        'error': {
            'code': ErrorCodes.UNKNOWN_ERROR,
            'message': "An unexpected error occurred",
            'details': details
        }
    }

def status_code_for(exc: AppError) -> int:
    """Map an application error to the HTTP status code it is reported with."""
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, PayloadTooLargeError):
        return 413
    if isinstance(exc, RateLimitError):
        return 429
    return 500

def api_exception_handler(func: Callable) -> Callable:
    """
    Decorator specifically for Flask API routes.

    Printer and unexpected failures are reported with a 500 status; their
    details are only included when the application runs in debug mode.

    Args:
        func: The API route function to wrap

    Returns:
        Wrapped function with standardized API exception handling
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AppError as e:
            status_code = status_code_for(e)
            if status_code >= 500:
                logger.error(f"{func.__name__} failed: {type(e).__name__}: {e.message}")
                body = e.to_dict(include_details=current_app.debug)
                if not current_app.debug:
                    body['error']['message'] = "Internal error"
            else:
                logger.warning(f"{func.__name__} rejected request: {e.message}")
                body = e.to_dict()
            response = jsonify(body)
            if isinstance(e, RateLimitError):
                response.headers['Retry-After'] = str(e.retry_after)
            return response, status_code
        except HTTPException:
            # Let Flask render aborts such as 413
            raise
        except Exception as e:
            # Handle unexpected exceptions
            error_response = handle_exception(e)
            if not current_app.debug:
                error_response['error'].pop('details', None)
            return jsonify(error_response), 500
    return wrapper

def validate_required_fields(data: Dict[str, Any], required_fields: list) -> None:
    """
    Validate that all required fields are present in the provided data.

    Args:
        data: Dictionary containing data to validate
        required_fields: List of required field names

    Raises:
        ValidationError: If any required fields are missing
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None]
    if missing_fields:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing_fields)}",
            {'missing_fields': missing_fields}
        )

def log_and_raise(error_class: Type[AppError],
                 message: str,
                 log_level: int = logging.ERROR,
                 details: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None) -> None:
    """
    Log an error message and raise an AppError.

    Args:
        error_class: AppError subclass to raise (must accept message, details, original_exception)
        message: Error message
        log_level: Logging level
        details: Additional error details
        original_exception: Original exception, if any

    Raises:
        AppError: The specified error class
    """
    logger.log(log_level, message, exc_info=original_exception is not None)
    raise error_class(message, details=details, original_exception=original_exception)
