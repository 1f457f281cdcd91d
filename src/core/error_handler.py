# src/core/error_handler.py
"""
Centralized error handling for filter-download
Every failure raised by the retrieval helpers and the test harness derives
from FilterDownloadError and carries a stable ErrorCode
"""

import logging
import traceback
from typing import Dict
from typing import Any
from typing import Optional
from datetime import datetime
from enum import Enum
from dataclasses import dataclass

logger = logging.getLogger(__name__)

class ErrorCode(Enum):
    """Standardized error codes"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_URL = "INVALID_URL"

    # Retrieval errors
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_CONTENT_TYPE = "INVALID_CONTENT_TYPE"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    FILESYSTEM_ERROR = "FILESYSTEM_ERROR"

    # Test harness errors
    TEST_RUN_ERROR = "TEST_RUN_ERROR"
    TEST_RUN_TIMEOUT = "TEST_RUN_TIMEOUT"

@dataclass
class ErrorResponse:
    """Standardized error report structure"""
    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: str = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat()

def handle_error(error: Exception, error_code: ErrorCode = None,
                 message: str = None, details: Dict[str, Any] = None) -> ErrorResponse:
    """Log an error and format it consistently"""

    if error_code is None:
        error_code = getattr(error, "error_code", ErrorCode.INTERNAL_ERROR)
    if message is None:
        message = str(error)
    if details is None:
        details = getattr(error, "details", None)

    error_response = ErrorResponse(
        error_code=error_code.value,
        message=message,
        details=details or {}
    )

    logger.error(f"Error {error_code.value}: {message}",
                 extra={"error_details": details, "traceback": traceback.format_exc()})

    return error_response

# Custom exception classes
class FilterDownloadError(Exception):
    """Base exception for filter-download"""
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
                 details: Dict[str, Any] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}

class ValidationError(FilterDownloadError):
    """Validation error"""
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)

class InvalidURLError(ValidationError):
    """URL is not a syntactically valid http(s) URL"""
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, details)
        self.error_code = ErrorCode.INVALID_URL

class RetrievalError(FilterDownloadError):
    """Base for everything a filter file retrieval can fail with"""

class InvalidStatusError(RetrievalError):
    def __init__(self, status: int, details: Dict[str, Any] = None):
        super().__init__(f"Response status is invalid: {status}",
                         ErrorCode.INVALID_STATUS, details)
        self.status = status

class InvalidContentTypeError(RetrievalError):
    def __init__(self, expected: str, details: Dict[str, Any] = None):
        super().__init__(f'Response content type should be: "{expected}"',
                         ErrorCode.INVALID_CONTENT_TYPE, details)
        self.expected = expected

class EmptyResponseError(RetrievalError):
    def __init__(self, details: Dict[str, Any] = None):
        super().__init__("Response is empty", ErrorCode.EMPTY_RESPONSE, details)

class TransportError(RetrievalError):
    """Network level failure; the underlying error is chained as __cause__"""
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, ErrorCode.TRANSPORT_ERROR, details)

class FilesystemError(RetrievalError):
    """Local read failure; the underlying error is chained as __cause__"""
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, ErrorCode.FILESYSTEM_ERROR, details)

class TestRunError(FilterDownloadError):
    """Test harness could not run the suite"""
    __test__ = False

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, ErrorCode.TEST_RUN_ERROR, details)

class TestRunTimeoutError(TestRunError):
    """Test suite blocked for longer than max_block_duration"""
    __test__ = False

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, details)
        self.error_code = ErrorCode.TEST_RUN_TIMEOUT

# Explicit exports
__all__ = [
    "ErrorCode",
    "ErrorResponse",
    "handle_error",
    "FilterDownloadError",
    "ValidationError",
    "InvalidURLError",
    "RetrievalError",
    "InvalidStatusError",
    "InvalidContentTypeError",
    "EmptyResponseError",
    "TransportError",
    "FilesystemError",
    "TestRunError",
    "TestRunTimeoutError",
]
