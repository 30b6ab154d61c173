"""Custom exceptions for Eminent Notes.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Folder errors (2xxx)
    FOLDER_NAME_REQUIRED = 2002
    FOLDER_DEPTH_EXCEEDED = 2003
    FOLDER_TREE_CORRUPT = 2004

    # Tag errors (3xxx)
    TAG_INVALID = 3002
    TAG_ALREADY_EXISTS = 3003

    # Storage errors (4xxx)
    STORAGE_WRITE_FAILED = 4002
    STORAGE_CONNECTION_FAILED = 4004
    RECORD_NOT_FOUND = 4005

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    UNKNOWN_FIELD = 7002
    SESSION_NOT_CONFIGURED = 7003


class NotesError(Exception):
    """Base exception for all Eminent Notes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class StorageError(NotesError):
    """Raised for storage/persistence errors (I/O or constraint failures)."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        kind: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if kind:
            details["kind"] = kind
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.kind = kind
        self.original_error = original_error


class RecordNotFoundError(StorageError):
    """Raised when a record addressed by ID does not exist in the store."""

    def __init__(self, kind: str, record_id: str, operation: Optional[str] = None):
        super().__init__(
            f"{kind.capitalize()} with ID '{record_id}' not found",
            operation=operation,
            kind=kind,
            code=ErrorCode.RECORD_NOT_FOUND,
        )
        self.record_id = record_id
        self.details["record_id"] = record_id


class DepthLimitError(NotesError):
    """Raised when a folder would be created beyond the maximum depth.

    Recoverable: the operation is refused and nothing is written.
    """

    def __init__(self, parent_id: str, parent_depth: int, max_depth: int):
        super().__init__(
            f"Cannot create a folder under '{parent_id}': maximum folder depth "
            f"of {max_depth} reached",
            code=ErrorCode.FOLDER_DEPTH_EXCEEDED,
            details={
                "parent_id": parent_id,
                "parent_depth": parent_depth,
                "max_depth": max_depth,
            },
        )
        self.parent_id = parent_id
        self.parent_depth = parent_depth
        self.max_depth = max_depth


class ValidationError(NotesError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class ConfigurationError(NotesError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
