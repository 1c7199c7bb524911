"""Structured error handling — stage errors, categories, and the tool error model."""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    INPUT_MISSING = "INPUT_MISSING"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_UNSUPPORTED = "FILE_UNSUPPORTED"
    FILE_UNREADABLE = "FILE_UNREADABLE"
    ACQUISITION_FAILED = "ACQUISITION_FAILED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    REMOTE_PROCESSING_FAILED = "REMOTE_PROCESSING_FAILED"
    API_PERMISSION_DENIED = "API_PERMISSION_DENIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    API_KEY_MISSING = "API_KEY_MISSING"
    GENERATION_FAILED = "GENERATION_FAILED"
    RESPONSE_FORMAT = "RESPONSE_FORMAT"
    THUMBNAIL_FAILED = "THUMBNAIL_FAILED"
    WORKFLOW_BUSY = "WORKFLOW_BUSY"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


class AnalyzerError(Exception):
    """Base class for every stage error raised by the analysis pipeline."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class ValidationError(AnalyzerError):
    """Required input is missing; raised before any network activity."""

    category = ErrorCategory.INPUT_MISSING


class AcquisitionError(AnalyzerError):
    """The media could not be fetched from its URL."""

    category = ErrorCategory.ACQUISITION_FAILED


class UploadError(AnalyzerError):
    """The Files API rejected or failed the upload."""

    category = ErrorCategory.UPLOAD_FAILED


class ProcessingError(AnalyzerError):
    """The uploaded asset reached FAILED or an unexpected state."""

    category = ErrorCategory.REMOTE_PROCESSING_FAILED


class GenerationError(AnalyzerError):
    """The structured-generation call itself failed."""

    category = ErrorCategory.GENERATION_FAILED


class ResponseFormatError(AnalyzerError):
    """The model answer is not valid JSON for the requested schema."""

    category = ErrorCategory.RESPONSE_FORMAT


class ThumbnailError(AnalyzerError):
    """Local frame capture failed (decode, seek or encode)."""

    category = ErrorCategory.THUMBNAIL_FAILED


class WorkflowBusyError(AnalyzerError):
    """A run was requested while another one is still in flight."""

    category = ErrorCategory.WORKFLOW_BUSY


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


_STAGE_HINTS: dict[ErrorCategory, str] = {
    ErrorCategory.INPUT_MISSING: "Provide a file_path or a non-blank url",
    ErrorCategory.ACQUISITION_FAILED: (
        "The URL could not be fetched through the retrieval proxy — check the link "
        "or pass the file as file_path instead"
    ),
    ErrorCategory.UPLOAD_FAILED: "Upload to the Gemini Files API failed — try again shortly",
    ErrorCategory.REMOTE_PROCESSING_FAILED: (
        "Gemini could not process this file — try a different file or format"
    ),
    ErrorCategory.GENERATION_FAILED: "The analysis request failed — check GEMINI_API_KEY and the model name",
    ErrorCategory.RESPONSE_FORMAT: "The model returned malformed JSON — run the analysis again",
    ErrorCategory.THUMBNAIL_FAILED: "Frames could not be decoded locally — check the video codec",
    ErrorCategory.WORKFLOW_BUSY: "An analysis is already running — wait for it to finish",
}


# Stage errors whose message carries the Gemini SDK error text.
_SDK_WRAPPING_ERRORS = (UploadError, ProcessingError, GenerationError)


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, FileNotFoundError):
        return (ErrorCategory.FILE_NOT_FOUND, "File not found — check the path")
    if isinstance(error, (PermissionError, IsADirectoryError)):
        return (ErrorCategory.FILE_UNREADABLE, "File cannot be read — check its permissions")

    if isinstance(error, AnalyzerError) and not isinstance(error, _SDK_WRAPPING_ERRORS):
        return (error.category, _STAGE_HINTS.get(error.category, str(error)))

    s = str(error).lower()

    if "api key" in s and ("no " in s or "missing" in s or "set gemini_api_key" in s):
        return (
            ErrorCategory.API_KEY_MISSING,
            "No Gemini API key — set GEMINI_API_KEY in the environment or the .env file",
        )
    if "403" in s or "permission" in s:
        return (
            ErrorCategory.API_PERMISSION_DENIED,
            "API key lacks permission for this model or file",
        )
    if "429" in s or "quota" in s or "resource_exhausted" in s:
        return (
            ErrorCategory.API_QUOTA_EXCEEDED,
            "Rate limit hit — wait a minute and run the analysis again",
        )
    if isinstance(error, AnalyzerError):
        return (error.category, _STAGE_HINTS.get(error.category, str(error)))
    if isinstance(error, (TimeoutError, httpx.TimeoutException, httpx.NetworkError)):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out or the connection failed — try again or check connectivity",
        )
    if "timeout" in s or "timed out" in s:
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )
    if "unsupported media extension" in s:
        return (
            ErrorCategory.FILE_UNSUPPORTED,
            "File extension not supported — use a common video or audio format",
        )

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.NETWORK_ERROR,
        ErrorCategory.UPLOAD_FAILED,
        ErrorCategory.RESPONSE_FORMAT,
        ErrorCategory.WORKFLOW_BUSY,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
