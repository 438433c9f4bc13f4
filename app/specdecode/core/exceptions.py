from http import HTTPStatus
from typing import Optional

HTTP_400_BAD_REQUEST = HTTPStatus.BAD_REQUEST.value
HTTP_404_NOT_FOUND = HTTPStatus.NOT_FOUND.value
HTTP_500_INTERNAL_SERVER_ERROR = HTTPStatus.INTERNAL_SERVER_ERROR.value
HTTP_422_UNPROCESSABLE_ENTITY = HTTPStatus.UNPROCESSABLE_ENTITY.value

class AppException(Exception):
    """Base exception for the application."""
    def __init__(self, message: str, status_code: int = HTTP_400_BAD_REQUEST):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

# Decoding exceptions
class SpecDecodeException(AppException):
    """Raised when a buffer cannot be decoded into spectra."""
    kind = "DecodeError"

    def __init__(self, message: str = "Decoding failed.", offset: Optional[int] = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (offset {offset})"
        super().__init__(message, status_code=HTTP_422_UNPROCESSABLE_ENTITY)

class OutOfBoundsError(SpecDecodeException):
    """Raised when a read would run past the end of the buffer."""
    kind = "OutOfBounds"

    def __init__(self, offset: int, width: int, length: int):
        self.width = width
        self.length = length
        super().__init__(f"Reading {width} byte(s) exceeds buffer of {length} byte(s)", offset=offset)

class UnsupportedVariantError(SpecDecodeException):
    """Raised for a recognized structural variant that is not implemented."""
    kind = "UnsupportedVariant"

class MissingMandatoryBlockError(SpecDecodeException):
    """Raised when a required block, tag or directory entry cannot be located."""
    kind = "MissingMandatoryBlock"

    def __init__(self, block: str, offset: Optional[int] = None, message: Optional[str] = None):
        self.block = block
        super().__init__(message or f"Failed to locate mandatory block {block}", offset=offset)

class BlockNotFoundError(MissingMandatoryBlockError):
    """Raised by the tag scanners when no tag matches the pattern."""

    def __init__(self, pattern: str, offset: Optional[int] = None):
        self.pattern = pattern
        super().__init__(pattern, offset=offset, message=f"Block pattern {pattern} not found")

class MalformedMetadataEntryError(SpecDecodeException):
    """Raised when a single metadata entry cannot be parsed. Always recoverable."""
    kind = "MalformedMetadataEntry"

class CountMismatchError(SpecDecodeException):
    """Raised when a declared point count disagrees with the decoded data."""
    kind = "CountMismatch"

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"Expected {expected} point(s), found {actual}")

class MalformedFileError(SpecDecodeException):
    """Raised when the overall file structure is corrupt (text formats)."""
    kind = "MalformedFile"

# Format selection exceptions
class UnsupportedFormatError(AppException):
    """Raised when an unsupported file format is requested or cannot be detected."""
    def __init__(self, file_format: str, supported_formats: list = None):
        message = f"Unsupported file format: {file_format}"
        if supported_formats:
            message += f". Supported formats: {', '.join(supported_formats)}"
        super().__init__(message, status_code=HTTP_400_BAD_REQUEST)

# Validation exceptions
class ValidationException(AppException):
    """Raised for validation errors."""
    def __init__(self, message: str = "Validation failed."):
        super().__init__(message, status_code=HTTP_422_UNPROCESSABLE_ENTITY)

class SpectrumValidationException(ValidationException):
    """Raised for spectrum validation errors."""
    def __init__(self, message: str = "Spectrum validation failed."):
        super().__init__(message)

# Storage and file exceptions
class FileNotFoundException(AppException):
    """Raised when a file is not found."""
    def __init__(self, file_path: str):
        super().__init__(f"File not found: {file_path}", status_code=HTTP_404_NOT_FOUND)

class FileReadException(AppException):
    """Raised when there's an error reading a file."""
    def __init__(self, file_path: str, error: str = None):
        message = f"Error reading file: {file_path}"
        if error:
            message += f" - {error}"
        super().__init__(message, status_code=HTTP_400_BAD_REQUEST)

# Configuration exceptions
class ConfigurationException(AppException):
    """Raised for configuration errors."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message, status_code=HTTP_500_INTERNAL_SERVER_ERROR)
