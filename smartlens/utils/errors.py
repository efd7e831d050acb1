"""Custom exception hierarchy for SmartLens.

All application exceptions inherit from :class:`SmartLensError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "tesseract", "anthropic", "sqlite") caused the
failure, and a class-level ``status_code`` used by the HTTP error handler.

The hierarchy is organized by pipeline stage:

    SmartLensError  (base -- catch-all for any SmartLens error)
    +-- UploadValidationError    (VALIDATED: rejected before any work, 4xx)
    |   +-- NoFileError
    |   +-- UnsupportedTypeError
    |   +-- FileTooLargeError
    |   +-- UserNotFoundError
    +-- OCRExtractionError       (EXTRACTED: an extraction engine threw)
    +-- ExtractionTooShortError  (LENGTH_CHECKED: carries the partial text)
    +-- NoteNotFoundError        (note lookup by id missed, 404)
    +-- NoteAccessDeniedError    (note belongs to another user, 403)
    +-- StorageError             (STORED: asset upload failed)
    +-- PersistenceError         (PERSISTED: note store failed)
    +-- LLMError                 (any LLM API call failure)
    |   +-- RateLimitError
    |   +-- LLMTimeoutError
    |   +-- CredentialError
    +-- AnalysisParseError       (model output had no usable JSON object)
    +-- ConfigurationError       (startup / missing config)

Analysis failures never reach the HTTP layer: the orchestrator downgrades
them to a reason attached to the successful response.
"""


class SmartLensError(Exception):
    """Base exception for all SmartLens errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[tesseract] OCR engine crashed``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Upload validation errors (terminal, no side effects)
# ---------------------------------------------------------------------------

class UploadValidationError(SmartLensError):
    """Raised when an upload is rejected before extraction starts."""

    status_code = 400

    def __init__(self, message: str = "Invalid upload", provider_name: str | None = None) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoFileError(UploadValidationError):
    """No file was attached to the upload request."""

    def __init__(self, message: str = "No file uploaded") -> None:
        super().__init__(message=message)


class UnsupportedTypeError(UploadValidationError):
    """The declared media type is not one the pipeline can extract."""

    status_code = 415

    def __init__(
        self,
        message: str = "Invalid file type. Only images (JPG/JPEG, PNG) and PDF are allowed.",
    ) -> None:
        super().__init__(message=message)


class FileTooLargeError(UploadValidationError):
    """The upload exceeds the configured byte limit."""

    status_code = 413

    def __init__(self, message: str = "File too large. Maximum size is 10MB.") -> None:
        super().__init__(message=message)


class UserNotFoundError(UploadValidationError):
    """The authenticated user id no longer maps to an account."""

    status_code = 404

    def __init__(self, message: str = "User not found. Please login again.") -> None:
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class OCRExtractionError(SmartLensError):
    """Raised when a text extraction engine fails (Tesseract, PDF parser)."""

    def __init__(
        self,
        message: str = "Failed to extract text",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionTooShortError(SmartLensError):
    """Raised when the trimmed extracted text is below the minimum length.

    Carries the partial text so the client can show what was read and
    prompt for a clearer re-scan.
    """

    status_code = 400

    def __init__(self, extracted_text: str, min_length: int) -> None:
        self.extracted_text = extracted_text
        self.extracted_length = len(extracted_text)
        self.min_length = min_length
        super().__init__(
            message=(
                f"Extracted text is too short. Minimum {min_length} characters "
                f"required. Found: {self.extracted_length} characters."
            ),
        )


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------

class StorageError(SmartLensError):
    """Raised when the object-storage collaborator cannot store an asset."""

    def __init__(
        self,
        message: str = "Asset storage failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(SmartLensError):
    """Raised when the note/user store cannot complete a query."""

    def __init__(
        self,
        message: str = "Failed to save note to database.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# LLM errors
# ---------------------------------------------------------------------------

class LLMError(SmartLensError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(LLMError):
    """Raised when the LLM provider rejects a call for rate or quota reasons.

    The message keeps the provider's wording so quota exhaustion can be
    told apart from plain rate limiting.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMTimeoutError(LLMError):
    """Raised when an LLM call does not settle within its time budget."""

    def __init__(
        self,
        message: str = "Analysis timeout - request took too long",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CredentialError(LLMError):
    """Raised when the provider rejects the configured API key."""

    def __init__(
        self,
        message: str = "API key issue - please check configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AnalysisParseError(SmartLensError):
    """Raised when the model response contains no parseable JSON object."""

    def __init__(
        self,
        message: str = "Failed to parse LLM response",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(SmartLensError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Note access errors (read and delete routes)
# ---------------------------------------------------------------------------

class NoteNotFoundError(SmartLensError):
    """No note exists with the requested id."""

    status_code = 404

    def __init__(self, message: str = "Note not found.") -> None:
        super().__init__(message=message)


class NoteAccessDeniedError(SmartLensError):
    """The requested note belongs to a different user."""

    status_code = 403

    def __init__(self, message: str = "Access denied. This note belongs to another user.") -> None:
        super().__init__(message=message)
