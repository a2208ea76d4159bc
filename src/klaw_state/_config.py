"""State configuration: StateConfig and initialization."""

from __future__ import annotations

from dataclasses import dataclass

from klaw_state._logging import configure_logging

__all__ = [
    'StateConfig',
    'get_config',
    'init',
    'reset_config',
]


@dataclass(frozen=True)
class StateConfig:
    """Configuration for klaw-state containers and trackers.

    Attributes:
        check_ownership: Raise OwnershipError when a container or tracker is
            mutated from a thread other than the one that first mutated it.
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = silent.
        json_logs: Emit JSON logs when logging is configured, else console output.
    """

    check_ownership: bool = True
    log_level: str | None = None
    json_logs: bool = True


_DEFAULT = StateConfig()

# Global configuration (set by init())
_config: StateConfig | None = None


def init(
    *,
    check_ownership: bool = True,
    log_level: str | None = None,
    json_logs: bool = True,
) -> StateConfig:
    """Initialize klaw-state with the specified configuration.

    Calling init() is optional; without it every container runs with the
    defaults of StateConfig.

    Args:
        check_ownership: Enforce single-thread ownership of mutations.
        log_level: Logging level ("DEBUG", "INFO", etc.). None = silent.
        json_logs: JSON output if True, colored console output otherwise.

    Returns:
        The StateConfig that was set.

    Example:
        ```python
        from klaw_state import init

        init(log_level='DEBUG', json_logs=False)
        ```
    """
    global _config  # noqa: PLW0603

    _config = StateConfig(
        check_ownership=check_ownership,
        log_level=log_level,
        json_logs=json_logs,
    )

    if log_level is not None:
        configure_logging(log_level, json_output=json_logs)

    return _config


def get_config() -> StateConfig:
    """Get the current configuration, or the defaults if init() was never called."""
    if _config is None:
        return _DEFAULT
    return _config


def reset_config() -> None:
    """Forget any configuration set by init()."""
    global _config  # noqa: PLW0603

    _config = None
