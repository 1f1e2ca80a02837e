"""Exception hierarchy shared by every stage of report generation."""

from enum import Enum


class ErrorKind(Enum):
    """What the user can do about a failure."""

    INPUT = "input"  # fix your input
    BUDGET = "budget"  # raise your budget or stop
    TRANSIENT = "transient"  # retry later
    REJECTED = "rejected"  # the provider refused this content
    PARSE = "parse"  # a document could not be read


class VerslagError(Exception):
    """Base class for every recoverable report-generation failure."""

    kind = ErrorKind.INPUT


class InputValidationError(VerslagError):
    """Raised before any network call when the user's input is unusable."""

    kind = ErrorKind.INPUT


class CredentialError(InputValidationError):
    """Raised when the API key is missing or malformed."""


class UnsupportedFileError(InputValidationError):
    """Raised for file extensions that cannot be ingested."""


class FileTooLargeError(InputValidationError):
    """Raised for files above the upload size limit."""


class SectionValidationError(InputValidationError):
    """Raised for unnamed sections, unknown section ids or illegal retries."""


class BudgetExceededError(VerslagError):
    """Raised when the session has already spent its configured ceiling."""

    kind = ErrorKind.BUDGET

    def __init__(self, ceiling: float, spent: float):
        self.ceiling = ceiling
        self.spent = spent
        super().__init__(f"Budget exceeded! Limit: ${ceiling:.2f}, Used: ${spent:.4f}")


class ProviderError(VerslagError):
    """Raised when the LLM provider call fails."""

    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ContentRejectedError(ProviderError):
    """Raised when the provider refuses the request itself."""

    kind = ErrorKind.REJECTED


class MalformedResponseError(ProviderError):
    """Raised when a success response carries no generated text."""


class DocumentParseError(VerslagError):
    """Raised when a document's text cannot be extracted."""

    kind = ErrorKind.PARSE

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Error processing {name}: {reason}")


class ReviewFailedError(VerslagError):
    """Raised when the final review/unify call fails."""

    def __init__(self, cause: VerslagError):
        self.kind = cause.kind
        self.cause = cause
        super().__init__(f"Final review failed: {cause}")
