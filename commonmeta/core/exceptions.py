"""
Error kinds raised by commonmeta.

Every reader, writer, vocabulary and registration client raises a subclass
of CommonmetaError. Besides the message each error carries an
``error_code`` (``CM-<AREA>-<NNN>``), a ``why_it_happened`` sentence and
``how_to_fix`` hints, which the CLI can show next to
``An error occurred: <message>``.

Hierarchy
---------
    CommonmetaError
    ├── InvalidIdentifierError      CM-ID-001   identifier fails its validator
    ├── ChecksumMismatchError       CM-ID-002   Crockford checksum mismatch
    ├── IOFailureError              CM-IO-001   file missing or unreadable
    ├── InvalidExtensionError       CM-IO-002   extension does not fit the format
    ├── NetworkFailureError         CM-NET-001  transport error or HTTP >= 400
    │   └── RateLimitedError        CM-NET-002  HTTP 429
    ├── OperationCancelled          CM-NET-003  cancel token set
    ├── NotFoundError               CM-NET-004  valid id, no record
    ├── RetryError                  CM-NET-005  retries exhausted
    ├── DecodeFailureError          CM-DATA-001 malformed JSON, XML or YAML
    ├── SchemaValidationError       CM-DATA-002 output fails its JSON schema
    └── UnsupportedConversionError  CM-CONV-001 no reader or writer

Handling
--------
A single-record operation raises the first fatal error. List and
registration operations catch CommonmetaError per record, log it with the
record id and continue:

    try:
        record = crossref.fetch("10.7554/elife.01567")
    except NotFoundError:
        ...
    except CommonmetaError as e:
        logger.warning("Skipping record", error=str(e), code=e.error_code)

Messages pass through sanitize_message() so registration credentials
(Crossref passwords, InvenioRDM tokens, Ghost keys) never reach the console
or the log file.
"""

import re
from typing import Any, List, Optional, Sequence, Tuple

# (pattern, replacement) pairs applied in order
_SECRET_PATTERNS = [
    (re.compile(r"(Bearer|Ghost|Basic)\s+[\w.=+/-]+"), r"\1 <token>"),
    (re.compile(r"((?:login_passwd|password|token|api[_-]?key)[=:]\s*)[^\s&]+"), r"\1<hidden>"),
    (re.compile(r"://[^:/\s]+:[^@/\s]+@"), "://<user>:<pass>@"),
    (re.compile(r"[A-Za-z]:\\Users\\[^\\\s]+"), "<user-home>"),
    (re.compile(r"/(?:home|Users)/[^/\s\"']+"), "<user-home>"),
]


def sanitize_message(message: str) -> str:
    """Mask tokens, passwords, URL credentials and home directories."""
    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def get_root_cause(exc: BaseException) -> BaseException:
    """Follow ``__cause__`` (preferred) and ``__context__`` to the first error."""
    seen = {id(exc)}
    while True:
        parent = exc.__cause__ or exc.__context__
        if parent is None or id(parent) in seen:
            return exc
        seen.add(id(parent))
        exc = parent


class CommonmetaError(Exception):
    """Base class of all commonmeta errors.

    Subclasses set ``error_code``, ``why_it_happened`` and ``how_to_fix`` as
    class attributes; a raise site can override each one:

        raise UnsupportedConversionError(
            "Unsupported output format bibtex",
            how_to_fix=["Use one of: commonmeta, crossrefxml, csl, datacite"],
        )
    """

    error_code: str = "CM-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Run the command with --verbose for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        super().__init__(sanitize_message(message or ""))
        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix


# ============================================================================
# Input Exceptions
# ============================================================================


class InvalidIdentifierError(CommonmetaError):
    """
    Raised when an input fails its identifier validator.

    Example
    -------
        crossref.fetch("not-a-doi")
        # Raises: InvalidIdentifierError("Invalid DOI: not-a-doi")
    """

    error_code = "CM-ID-001"
    why_it_happened = (
        "The identifier does not match the expected pattern for DOI, ORCID, "
        "ROR, UUID or OpenAlex identifiers"
    )
    how_to_fix = [
        "Check the identifier for typos",
        "Pass DOIs as 10.PREFIX/SUFFIX or https://doi.org/10.PREFIX/SUFFIX",
    ]


class InvalidExtensionError(CommonmetaError):
    """
    Raised when a file extension does not match the declared format.

    Example
    -------
        commonmeta.load("record.xml")
        # Raises: InvalidExtensionError("Invalid file extension: .xml")
    """

    error_code = "CM-IO-002"
    why_it_happened = "The file extension is not supported for this format"
    how_to_fix = [
        "Use .json for single records",
        "Use .jsonl or .json for lists of records",
        "Pass --from to declare the input format explicitly",
    ]


class IOFailureError(CommonmetaError):
    """Raised when opening, reading or writing a file fails."""

    error_code = "CM-IO-001"
    why_it_happened = "A file could not be opened, read or written"
    how_to_fix = [
        "Check that the file exists and the path is spelled correctly",
        "Check file and directory permissions",
    ]

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.path = path


# ============================================================================
# Network Exceptions
# ============================================================================


class NetworkFailureError(CommonmetaError):
    """
    Raised on transport errors and on HTTP responses with status >= 400.

    Attributes
    ----------
    status : int, optional
        HTTP status code returned by the remote service
    url : str, optional
        Request URL
    """

    error_code = "CM-NET-001"
    why_it_happened = "The remote service could not be reached or returned an error"
    how_to_fix = [
        "Check your network connection",
        "Check the status page of the remote service",
        "Retry the operation later",
    ]

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status = status
        self.url = url

    @property
    def retryable(self) -> bool:
        """Transport errors and server errors are worth retrying."""
        return self.status is None or self.status >= 500


class RateLimitedError(NetworkFailureError):
    """
    Raised on HTTP 429 after the limiter's budget is exhausted.

    Attributes
    ----------
    retry_after : float, optional
        Seconds to wait before retrying (from the Retry-After header)
    """

    error_code = "CM-NET-002"
    why_it_happened = (
        "The remote service rejected the request because too many requests "
        "were made in a short period"
    )
    how_to_fix = [
        "Wait a few minutes before retrying",
        "Lower --number or split the list into smaller pages",
    ]

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, status=429, url=url, **kwargs)
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return True


class OperationCancelled(CommonmetaError):
    """Raised when a request is cancelled through its cancel token.

    Cancellation is never retried.
    """

    error_code = "CM-NET-003"
    why_it_happened = "The operation was cancelled before it completed"
    how_to_fix = ["Run the command again"]


class NotFoundError(CommonmetaError):
    """
    Raised when a registry or API returns nothing for a specific id.

    Example
    -------
        ror.fetch("https://ror.org/0000000aa")
        # Raises: NotFoundError("ROR not found: https://ror.org/0000000aa")
    """

    error_code = "CM-NET-004"
    why_it_happened = "The identifier is valid but no record was found for it"
    how_to_fix = [
        "Check that the identifier has been registered",
        "Check that you are querying the right service with --from",
    ]


# ============================================================================
# Content Exceptions
# ============================================================================


class DecodeFailureError(CommonmetaError):
    """Raised when JSON, XML or YAML input is malformed."""

    error_code = "CM-DATA-001"
    why_it_happened = "The input could not be parsed as JSON, XML or YAML"
    how_to_fix = [
        "Validate the input file with a JSON or XML linter",
        "Check that --from matches the content of the input",
    ]


class SchemaValidationError(CommonmetaError):
    """
    Raised when a record fails JSON schema validation.

    Attributes
    ----------
    errors : list of (pointer, message)
        JSON pointer to the failing element and the validator message
    """

    error_code = "CM-DATA-002"
    why_it_happened = "The produced record does not conform to the target schema"
    how_to_fix = [
        "Inspect the listed JSON pointers for missing or malformed fields",
        "Check the source record for incomplete metadata",
    ]

    def __init__(
        self,
        message: str,
        errors: Optional[Sequence[Tuple[str, str]]] = None,
        output: Optional[bytes] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.errors: List[Tuple[str, str]] = list(errors or [])
        self.output = output

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        details = "; ".join(f"{pointer}: {msg}" for pointer, msg in self.errors[:5])
        return f"{base} ({details})"


class ChecksumMismatchError(CommonmetaError):
    """
    Raised when a Crockford base32 checksum does not validate.

    Example
    -------
        crockford.decode("f9zqn-sf06599", checksum=True)
        # Raises: ChecksumMismatchError("Checksum mismatch")
    """

    error_code = "CM-ID-002"
    why_it_happened = "The two-digit ISO 7064 checksum does not match the encoded value"
    how_to_fix = [
        "Check the identifier for transposed or mistyped characters",
    ]


class UnsupportedConversionError(CommonmetaError):
    """Raised when the (source, target) pair has no reader or writer."""

    error_code = "CM-CONV-001"
    why_it_happened = "There is no reader or writer for the requested format"
    how_to_fix = [
        "Run 'commonmeta --help' to list supported formats",
        "Convert to commonmeta first and then to the target format",
    ]


class RetryError(CommonmetaError):
    """Raised when all retry attempts are exhausted."""

    error_code = "CM-NET-005"
    why_it_happened = "The operation failed repeatedly after multiple retry attempts"
    how_to_fix = [
        "Wait a few minutes and try again",
        "Check the remote service status",
    ]

    def __init__(
        self,
        message: str,
        last_exception: Optional[Exception] = None,
        attempts: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.last_exception = last_exception
        self.attempts = attempts
