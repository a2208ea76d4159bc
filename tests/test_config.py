"""Tests for configuration and single-owner confinement."""

from __future__ import annotations

import threading

import pytest
from klaw_state import (
    AsyncValue,
    Loaded,
    OperationTracker,
    OwnershipError,
    StateConfig,
    get_config,
    init,
    reset_config,
)


def _in_thread(func) -> BaseException | None:
    """Run ``func`` in a new thread and return what it raised, if anything."""
    raised: list[BaseException] = []

    def target() -> None:
        try:
            func()
        except BaseException as exc:  # noqa: BLE001
            raised.append(exc)

    thread = threading.Thread(target=target)
    thread.start()
    thread.join()
    return raised[0] if raised else None


class TestConfig:
    """Tests for init/get_config/reset_config."""

    def test_defaults_without_init(self) -> None:
        """get_config() works without init()."""
        assert get_config() == StateConfig()

    def test_init_sets_config(self) -> None:
        """init() returns and stores the configuration."""
        config = init(check_ownership=False)

        assert config.check_ownership is False
        assert get_config() is config

    def test_reset_config(self) -> None:
        """reset_config() restores defaults."""
        init(check_ownership=False)
        reset_config()

        assert get_config().check_ownership is True

    def test_config_is_frozen(self) -> None:
        """StateConfig is immutable."""
        config = StateConfig()
        with pytest.raises(AttributeError):
            config.check_ownership = False  # type: ignore[misc]


class TestOwnership:
    """Tests for OwnerGuard enforcement."""

    def test_mutation_from_other_thread_raises(self) -> None:
        """A container claimed by one thread rejects mutations from another."""
        value = AsyncValue[int]()
        value.set(1)

        error = _in_thread(lambda: value.set(2))

        assert isinstance(error, OwnershipError)
        assert value.current_value == 1

    def test_first_mutating_thread_becomes_owner(self) -> None:
        """Ownership is claimed lazily by the first mutation."""
        value = AsyncValue[int]()

        assert _in_thread(lambda: value.set(1)) is None
        with pytest.raises(OwnershipError):
            value.set(2)

    def test_tracker_is_guarded(self) -> None:
        """Trackers enforce the same rule."""
        tracker = OperationTracker[str]()
        tracker.start('save')

        error = _in_thread(lambda: tracker.complete('save'))

        assert isinstance(error, OwnershipError)
        assert tracker.is_active('save')

    @pytest.mark.anyio
    async def test_run_into_foreign_target_leaves_tracker_untouched(self) -> None:
        """run_into() with a container owned elsewhere raises before marking the key active."""
        tracker = OperationTracker[str]()
        tracker.start('fetch')
        target = AsyncValue(1)
        assert _in_thread(lambda: target.set(2)) is None
        calls = []

        async def action() -> int:
            calls.append(1)
            return 3

        with pytest.raises(OwnershipError):
            await tracker.run_into('save', target, action)

        assert tracker.active_keys == frozenset({'fetch'})
        assert calls == []
        assert target.state == Loaded(2)

    def test_reads_are_not_guarded(self) -> None:
        """Reading from another thread is allowed."""
        value = AsyncValue(5)
        value.set(6)
        seen = []

        assert _in_thread(lambda: seen.append(value.current_value)) is None
        assert seen == [6]

    def test_check_can_be_disabled(self) -> None:
        """init(check_ownership=False) turns the check off."""
        init(check_ownership=False)
        value = AsyncValue[int]()
        value.set(1)

        assert _in_thread(lambda: value.set(2)) is None
        assert value.current_value == 2
