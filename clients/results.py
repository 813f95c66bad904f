"""
Result types returned by the web client and authenticator.
Every operation reports success or a distinguishable failure instead of None.
"""
from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, Mapping, Optional, TypeVar

from utils.api_utils import APIError, ErrorKind, validate_json


T = TypeVar('T')


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single fetch, after any redirects were followed."""
    url: str
    status_code: Optional[int] = None
    body: bytes = b''
    headers: Mapping[str, str] = field(default_factory=dict)
    redirect_url: Optional[str] = None
    redirects: int = 0
    requests_made: int = 0
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    @property
    def content_type(self) -> str:
        """Media type of the body without parameters, lowercased."""
        for key, value in self.headers.items():
            if key.lower() == 'content-type':
                return value.split(';', 1)[0].strip().lower()
        return ''

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Raises:
            APIError: If the body is not valid JSON
        """
        return validate_json(self.text)


@dataclass(frozen=True)
class Result(Generic[T]):
    """A value or the reason it could not be produced."""
    value: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, value: T) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> 'Result[T]':
        return cls(error=message, error_kind=kind)

    @classmethod
    def from_fetch(cls, fetched: FetchResult) -> 'Result[T]':
        """Carry a failed fetch's error over to a converter result."""
        return cls(
            error=fetched.error or "Request failed",
            error_kind=fetched.error_kind or ErrorKind.NETWORK
        )

    def unwrap(self) -> T:
        """
        Return the value or raise the failure.

        Raises:
            APIError: If the result is a failure
        """
        if not self.ok:
            raise APIError(self.error or "Operation failed", self.error_kind)
        return self.value


@dataclass(frozen=True)
class ResolvedResource:
    """Canonical API URL for a public share URL. Unpacks as (success, url)."""
    success: bool
    url: str = ''
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def __iter__(self) -> Iterator:
        return iter((self.success, self.url))

    @classmethod
    def failed(cls, kind: ErrorKind, message: str) -> 'ResolvedResource':
        return cls(success=False, url='', error=message, error_kind=kind)
