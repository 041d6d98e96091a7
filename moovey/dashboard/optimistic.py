"""Optimistic mutations with rollback.

Every dashboard mutation goes through `OptimisticCoordinator.execute`:

1. `mutate_local()` changes in-memory state right away (state: PENDING).
2. `api_call()` sends the request.
3. On success the listed cache keys are invalidated (state: COMMITTED).
   On any `MooveyAPIError` (network or rejection) `revert_local()` puts the
   previous state back and the user gets a one-line notification
   (state: ROLLED_BACK). Any other exception also reverts the local change,
   then propagates to the caller.

Mutations that share a key (the task id) are serialized, so a rollback from
an older request can never overwrite a newer optimistic change. As a second
line of defence each mutation carries a version and a rollback is skipped if a
newer mutation for the same key has already committed.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

from moovey.cache import TTLCache
from moovey.errors import MooveyAPIError
from moovey.dashboard.notifier import Notifier

logger = logging.getLogger(__name__)


class MutationState(str, Enum):
    """Lifecycle of one mutation."""
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class MutationResult:
    """Outcome of one mutation."""

    def __init__(self, key: str, version: int):
        self.key = key
        self.version = version
        self.state: MutationState = MutationState.PENDING
        self.response: Any = None
        self.error: Optional[str] = None
        self.failure_kind: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.state == MutationState.COMMITTED

    @property
    def rolled_back(self) -> bool:
        return self.state == MutationState.ROLLED_BACK

    def __repr__(self) -> str:
        return f"MutationResult(key={self.key!r}, state={self.state.value}, error={self.error!r})"


class OptimisticCoordinator:
    """Runs optimistic commands and keeps same-key mutations in order."""

    def __init__(self, cache: Optional[TTLCache] = None, notifier: Optional[Notifier] = None):
        self.cache = cache
        self.notifier = notifier or Notifier()
        self._registry_lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._versions: Dict[str, int] = {}
        self._committed_versions: Dict[str, int] = {}

    @contextmanager
    def _serialized(self, key: str) -> Iterator[None]:
        """Hold the key's lock; its bookkeeping is dropped once nobody is waiting on it."""
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._registry_lock:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._key_locks[key]
                    self._versions.pop(key, None)
                    self._committed_versions.pop(key, None)

    def _next_version(self, key: str) -> int:
        with self._registry_lock:
            version = self._versions.get(key, 0) + 1
            self._versions[key] = version
            return version

    def _mark_committed(self, key: str, version: int) -> None:
        with self._registry_lock:
            if version > self._committed_versions.get(key, 0):
                self._committed_versions[key] = version

    def _is_stale(self, key: str, version: int) -> bool:
        with self._registry_lock:
            return self._committed_versions.get(key, 0) > version

    def _invalidate(self, keys: Iterable[str]) -> None:
        if self.cache is None:
            return
        for cache_key in keys:
            self.cache.invalidate(cache_key)

    def _revert(self, key: str, result: MutationResult, revert_local: Callable[[], None], description: str) -> None:
        if self._is_stale(key, result.version):
            logger.info(f"{description} for {key}: discarding stale rollback (v{result.version})")
        else:
            revert_local()

    def _fail(self, result: MutationResult, error: MooveyAPIError, description: str, error_message: str) -> None:
        result.state = MutationState.ROLLED_BACK
        result.error = error.message
        result.failure_kind = error.failure_kind
        logger.warning(
            f"{description} rolled back ({error.failure_kind} failure"
            f"{f', HTTP {error.status_code}' if error.status_code else ''}): {error.message}"
        )
        self.notifier.error(error_message)

    def execute(
        self,
        key: str,
        mutate_local: Callable[[], Optional[bool]],
        api_call: Callable[[], Any],
        revert_local: Callable[[], None],
        invalidate_keys: Iterable[str] = (),
        description: str = "mutation",
        error_message: str = "Something went wrong. Please try again.",
        success_message: Optional[str] = None,
    ) -> Optional[MutationResult]:
        """Apply a change locally, confirm it with the server, roll back on failure.

        Args:
            key: Serialization key (usually the task id)
            mutate_local: Applies the optimistic change. Returning False cancels
                the mutation before any request is made.
            api_call: Sends the request; raises MooveyAPIError on failure
            revert_local: Restores the state captured before `mutate_local`
            invalidate_keys: Cache keys to drop once the server confirms
            description: Used in log lines
            error_message: One-line notification shown on rollback
            success_message: Optional notification shown on commit

        Returns:
            MutationResult, or None if `mutate_local` cancelled the mutation
        """
        with self._serialized(key):
            if mutate_local() is False:
                logger.debug(f"{description} skipped for {key}")
                return None

            result = MutationResult(key, self._next_version(key))
            try:
                result.response = api_call()
            except MooveyAPIError as e:
                self._revert(key, result, revert_local, description)
                self._fail(result, e, description, error_message)
                return result
            except BaseException:
                # Unexpected errors still leave local state as it was, then propagate
                self._revert(key, result, revert_local, description)
                result.state = MutationState.ROLLED_BACK
                logger.error(f"{description} for {key} failed unexpectedly; local change reverted")
                raise

            self._mark_committed(key, result.version)
            self._invalidate(invalidate_keys)
            result.state = MutationState.COMMITTED
            logger.info(f"{description} committed for {key}")
            if success_message:
                self.notifier.success(success_message)
            return result

    def execute_confirmed(
        self,
        key: str,
        api_call: Callable[[], Any],
        apply_local: Callable[[Any], None],
        invalidate_keys: Iterable[str] = (),
        description: str = "mutation",
        error_message: str = "Something went wrong. Please try again.",
        success_message: Optional[str] = None,
    ) -> MutationResult:
        """Send the request first and only touch local state once it succeeds.

        Used where the server decides the durable identity of the record
        (custom task creation), so there is never a temporary local id to
        reconcile.
        """
        with self._serialized(key):
            result = MutationResult(key, self._next_version(key))
            try:
                result.response = api_call()
            except MooveyAPIError as e:
                self._fail(result, e, description, error_message)
                return result

            apply_local(result.response)
            self._mark_committed(key, result.version)
            self._invalidate(invalidate_keys)
            result.state = MutationState.COMMITTED
            logger.info(f"{description} committed for {key}")
            if success_message:
                self.notifier.success(success_message)
            return result
