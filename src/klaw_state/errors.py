"""Structured error taxonomy: dual struct+exception for state and raise-based code.

Every failure recorded by an AsyncValue or OperationTracker is one of a closed
set of struct variants. Actions fail either by raising any exception (which is
normalized) or by raising ``error.to_exception()`` to pick a kind explicitly.
"""

from __future__ import annotations

import errno
import socket
import ssl
from enum import StrEnum

import msgspec

__all__ = [
    'InvalidFormat',
    'InvalidInput',
    'Network',
    'NetworkKind',
    'NotFound',
    'OutOfRange',
    'OwnershipError',
    'Required',
    'Server',
    'StateErrorException',
    'StructuredError',
    'Unauthorized',
    'Unknown',
    'Validation',
    'ValidationDetail',
    'normalize_error',
]


# --- Network ---


class NetworkKind(StrEnum):
    """Transport-level failure kinds."""

    TIMEOUT = 'timeout'
    NO_CONNECTION = 'no_connection'
    UNREACHABLE = 'unreachable'
    TLS_ERROR = 'tls_error'
    DNS_ERROR = 'dns_error'


_NETWORK_MESSAGES = {
    NetworkKind.TIMEOUT: 'The connection timed out',
    NetworkKind.NO_CONNECTION: 'No network connection',
    NetworkKind.UNREACHABLE: 'Unable to reach the server',
    NetworkKind.TLS_ERROR: 'Could not establish a secure connection',
    NetworkKind.DNS_ERROR: 'The server could not be found',
}


# --- Validation details ---


def _bound(value: float) -> str:
    return f'{value:g}'


class ValidationDetail(msgspec.Struct, frozen=True, gc=False, tag_field='type'):
    """Base for the validation failure details carried by Validation."""

    @property
    def message(self) -> str:
        raise NotImplementedError


class InvalidInput(ValidationDetail, frozen=True, gc=False, tag='invalid_input'):
    """Field value rejected for a caller-supplied reason."""

    field: str
    reason: str

    @property
    def message(self) -> str:
        return f'{self.field}: {self.reason}'


class OutOfRange(ValidationDetail, frozen=True, gc=False, tag='out_of_range'):
    """Field value outside ``[min, max]``."""

    field: str
    min: float
    max: float

    @property
    def message(self) -> str:
        return f'{self.field} must be between {_bound(self.min)} and {_bound(self.max)}'


class Required(ValidationDetail, frozen=True, gc=False, tag='required'):
    """Mandatory field left empty."""

    field: str

    @property
    def message(self) -> str:
        return f'{self.field} is required'


class InvalidFormat(ValidationDetail, frozen=True, gc=False, tag='invalid_format'):
    """Field value not in the expected format."""

    field: str
    expected: str

    @property
    def message(self) -> str:
        return f'{self.field} has an invalid format (expected {self.expected})'


# --- Structured errors ---


class StructuredError(msgspec.Struct, frozen=True, gc=False, tag_field='type'):
    """Base of the closed error taxonomy.

    Concrete variants are Network, Validation, NotFound, Unauthorized, Server
    and Unknown. Values are immutable and hashable, so they can be stored per
    operation key and shared freely.

    Examples:
        >>> Server(503, 'Service Unavailable').is_retryable
        True
        >>> NotFound('User').message
        'User was not found'
    """

    @property
    def is_retryable(self) -> bool:
        """Whether retrying the same request may succeed."""
        return False

    @property
    def message(self) -> str:
        """Short text suitable for direct display to users."""
        raise NotImplementedError

    @property
    def debug_description(self) -> str:
        """Detailed rendering for logs."""
        raise NotImplementedError

    def to_exception(self) -> StateErrorException:
        """Convert to exception for raise-based code."""
        return StateErrorException(self)


class Network(StructuredError, frozen=True, gc=False, tag='network'):
    """Transport failure - always retryable."""

    kind: NetworkKind

    @property
    def is_retryable(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return _NETWORK_MESSAGES[self.kind]

    @property
    def debug_description(self) -> str:
        return f'NetworkError: {self.kind}'


class Validation(StructuredError, frozen=True, gc=False, tag='validation'):
    """Input rejected before or by the server."""

    detail: ValidationDetail

    @property
    def message(self) -> str:
        return self.detail.message

    @property
    def debug_description(self) -> str:
        return f'ValidationError: {self.detail!r}'


class NotFound(StructuredError, frozen=True, gc=False, tag='not_found'):
    """Requested resource does not exist."""

    resource: str

    @property
    def message(self) -> str:
        return f'{self.resource} was not found'

    @property
    def debug_description(self) -> str:
        return f'NotFoundError: {self.resource}'


class Unauthorized(StructuredError, frozen=True, gc=False, tag='unauthorized'):
    """Authentication required or rejected."""

    @property
    def message(self) -> str:
        return 'Authentication is required'

    @property
    def debug_description(self) -> str:
        return 'UnauthorizedError'


class Server(StructuredError, frozen=True, gc=False, tag='server'):
    """Server answered with an error status; 5xx codes are retryable."""

    code: int
    message_text: str = msgspec.field(name='message')

    @property
    def is_retryable(self) -> bool:
        return self.code >= 500

    @property
    def message(self) -> str:
        return self.message_text

    @property
    def debug_description(self) -> str:
        return f'ServerError({self.code}): {self.message_text}'


class Unknown(StructuredError, frozen=True, gc=False, tag='unknown'):
    """Anything not recognised by normalize_error."""

    message_text: str = msgspec.field(name='message')

    @property
    def message(self) -> str:
        return self.message_text

    @property
    def debug_description(self) -> str:
        return f'UnknownError: {self.message_text}'


class StateErrorException(Exception):
    """Structured error - exception variant.

    Raise ``error.to_exception()`` inside an action to fail with a specific
    kind instead of Unknown.
    """

    def __init__(self, error: StructuredError) -> None:
        self.error = error
        super().__init__(error.message)

    def to_struct(self) -> StructuredError:
        """Convert to struct for state-based code."""
        return self.error


class OwnershipError(RuntimeError):
    """Raised when a container or tracker is mutated outside its owning thread."""


# --- Normalization ---

_UNREACHABLE_ERRNOS = frozenset({errno.EHOSTUNREACH, errno.EHOSTDOWN})
_NO_CONNECTION_ERRNOS = frozenset({errno.ENETUNREACH, errno.ENETDOWN})


def _network_kind(error: BaseException) -> NetworkKind | None:
    # Order matters: gaierror and SSLError are OSError subclasses.
    if isinstance(error, TimeoutError):
        return NetworkKind.TIMEOUT
    if isinstance(error, socket.gaierror):
        return NetworkKind.DNS_ERROR
    if isinstance(error, ssl.SSLError):
        return NetworkKind.TLS_ERROR
    if isinstance(error, ConnectionRefusedError):
        return NetworkKind.UNREACHABLE
    if isinstance(error, ConnectionResetError | ConnectionAbortedError | BrokenPipeError):
        return NetworkKind.NO_CONNECTION
    if isinstance(error, OSError):
        if error.errno in _UNREACHABLE_ERRNOS:
            return NetworkKind.UNREACHABLE
        if error.errno in _NO_CONNECTION_ERRNOS:
            return NetworkKind.NO_CONNECTION
    return None


def normalize_error(error: BaseException | StructuredError) -> StructuredError:
    """Map an arbitrary caught error into the structured taxonomy.

    Structured errors pass through unchanged, StateErrorException yields the
    struct it carries, recognised transport failures (directly or anywhere in
    the explicit ``__cause__`` chain) become Network, and everything else
    becomes Unknown with the error's description.

    Args:
        error: A caught exception or an already structured error.

    Returns:
        The matching StructuredError variant.

    Examples:
        >>> normalize_error(TimeoutError())
        Network(kind=<NetworkKind.TIMEOUT: 'timeout'>)
        >>> normalize_error(ValueError('bad'))
        Unknown(message_text='bad')
    """
    if isinstance(error, StructuredError):
        return error
    if isinstance(error, StateErrorException):
        return error.to_struct()

    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        kind = _network_kind(current)
        if kind is not None:
            return Network(kind)
        current = current.__cause__

    return Unknown(str(error) or type(error).__name__)
