"""klaw-state: exclusive async value state and concurrent operation tracking.

Flat imports (preferred):
    from klaw_state import AsyncValue, OperationTracker, Loaded, Failed
    from klaw_state import Network, NetworkKind, normalize_error

Submodule imports (for organization):
    from klaw_state.state import AsyncState, Idle, Loading, Loaded, Failed
    from klaw_state.errors import StructuredError, Server, Unknown
    from klaw_state.store import Store, OperationStore
"""

# Configuration
from klaw_state._config import StateConfig, get_config, init, reset_config

# Logging
from klaw_state._logging import add_log_hook, clear_log_hooks, configure_logging, get_logger, remove_log_hook

# Decorators
from klaw_state.decorators import tracked

# Errors
from klaw_state.errors import (
    InvalidFormat,
    InvalidInput,
    Network,
    NetworkKind,
    NotFound,
    OutOfRange,
    OwnershipError,
    Required,
    Server,
    StateErrorException,
    StructuredError,
    Unauthorized,
    Unknown,
    Validation,
    ValidationDetail,
    normalize_error,
)

# Result types
from klaw_state.result import Err, Ok, Result

# Observation
from klaw_state.signal import ChangeSignal, ChangeWatcher

# State machine
from klaw_state.state import AsyncState, Failed, Idle, Loaded, Loading

# Stores
from klaw_state.store import (
    AsyncStateProvider,
    OperationStore,
    OperationTrackable,
    Store,
    any_loading,
    first_error,
)

# Containers
from klaw_state.tracker import OperationTracker
from klaw_state.value import AsyncValue

__all__ = [
    # State machine
    'AsyncState',
    # Stores
    'AsyncStateProvider',
    # Containers
    'AsyncValue',
    # Observation
    'ChangeSignal',
    'ChangeWatcher',
    # Result types
    'Err',
    'Failed',
    'Idle',
    # Errors
    'InvalidFormat',
    'InvalidInput',
    'Loaded',
    'Loading',
    'Network',
    'NetworkKind',
    'NotFound',
    'Ok',
    'OperationStore',
    'OperationTrackable',
    'OperationTracker',
    'OutOfRange',
    'OwnershipError',
    'Required',
    'Result',
    'Server',
    # Configuration
    'StateConfig',
    'StateErrorException',
    'Store',
    'StructuredError',
    'Unauthorized',
    'Unknown',
    'Validation',
    'ValidationDetail',
    # Logging
    'add_log_hook',
    'any_loading',
    'clear_log_hooks',
    'configure_logging',
    'first_error',
    'get_config',
    'get_logger',
    'init',
    'normalize_error',
    'remove_log_hook',
    'reset_config',
    # Decorators
    'tracked',
]
