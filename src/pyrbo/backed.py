"""Objects whose state is mirrored to a key-value store."""

from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
from collections.abc import Callable
from typing import Any

from pyrbo._codec import decode_document, encode_document
from pyrbo._debounce import Debouncer
from pyrbo.config import DEFAULT_SAVE_INTERVAL, RboConfig
from pyrbo.exceptions import RboConfigError, RboDecodeError, RboError
from pyrbo.store import KeyValueStore, RedisStore
from pyrbo.tracking.events import EventEmitter, Handler, MutationEvent, MutationKind
from pyrbo.tracking.nodes import Path, Tracker, to_plain

_logger = logging.getLogger(__name__)


class RedisBackedObject:
    """A dict or list that saves itself to a key-value store when mutated.

    Usage::

        store = RedisStore.from_url("redis://localhost:6379/0")
        async with RedisBackedObject(store, "bot:state", {"seen": []}) as state:
            state.root["seen"].append("user-1")  # written about a second later

    Construction is synchronous and must happen inside a running event
    loop.  The live :attr:`root` is usable immediately and holds a copy of
    *default*; the stored snapshot (if any) is merged over it in the
    background, see :attr:`hydrated`.

    Parameters
    ----------
    store : KeyValueStore
        Store the object is mirrored to.
    key : str
        Key holding the serialized object.
    default : dict or list
        Initial value, also restored by :meth:`reset`.  It is deep-copied;
        later changes to the caller's value have no effect.
    save_interval : float
        Debounce interval in seconds.
    hydrate : bool
        Whether to load and merge the stored snapshot on construction.
    on_save_error : callable, optional
        Called with the exception when a background save fails.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        default: dict[str, Any] | list[Any],
        *,
        save_interval: float = DEFAULT_SAVE_INTERVAL,
        hydrate: bool = True,
        on_save_error: Callable[[Exception], None] | None = None,
    ) -> None:
        if not key:
            raise RboConfigError("key must be a non-empty string")
        if save_interval < 0:
            raise RboConfigError(f"save_interval must be >= 0, got {save_interval!r}")
        if not isinstance(default, (dict, list, tuple)):
            raise RboConfigError(f"default must be a dict or list, got {type(default).__name__}")
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise RboError("RedisBackedObject must be created inside a running event loop") from exc

        self._store = store
        self._owned_store: RedisStore | None = None
        self._key = key
        self._save_interval = save_interval
        self._on_save_error = on_save_error
        self._default = copy.deepcopy(default)
        self._dirty = False
        self._save_lock = asyncio.Lock()
        self._save_tasks: set[asyncio.Task[None]] = set()

        self.events = EventEmitter()
        self._debouncer = Debouncer(save_interval, self._start_save, loop=self._loop)
        self._tracker = Tracker(self._on_mutation)
        self._root: Any = self._tracker.wrap(copy.deepcopy(default))

        self._hydrated: asyncio.Future[None]
        if hydrate:
            self._hydrated = self._loop.create_task(self._hydrate(), name=f"pyrbo-hydrate:{key}")
            self._hydrated.add_done_callback(self._log_hydrate_failure)
        else:
            self._hydrated = self._loop.create_future()
            self._hydrated.set_result(None)

    @classmethod
    def from_config(
        cls,
        config: RboConfig,
        default: dict[str, Any] | list[Any],
        *,
        store: KeyValueStore | None = None,
        on_save_error: Callable[[Exception], None] | None = None,
    ) -> RedisBackedObject:
        """Build from an :class:`RboConfig`.

        Without an explicit *store* a Redis client is created from
        ``config.redis_url`` and closed again by :meth:`close`.
        """
        owned: RedisStore | None = None
        if store is None:
            owned = RedisStore.from_url(config.redis_url)
            store = owned
        obj = cls(
            store,
            config.key,
            default,
            save_interval=config.save_interval,
            hydrate=config.hydrate,
            on_save_error=on_save_error,
        )
        obj._owned_store = owned
        return obj

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RedisBackedObject:
        await self.wait_hydrated()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop hydration if still running, write pending changes and release an owned store."""
        if not self._hydrated.done():
            self._hydrated.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._hydrated
        try:
            await self.flush()
        finally:
            if self._owned_store is not None:
                await self._owned_store.close()
                self._owned_store = None

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def root(self) -> Any:
        """The live object.  Read and mutate it directly."""
        return self._root

    @property
    def key(self) -> str:
        return self._key

    @property
    def save_interval(self) -> float:
        return self._save_interval

    @property
    def default(self) -> Any:
        """A fresh copy of the value :meth:`reset` restores."""
        return copy.deepcopy(self._default)

    @property
    def hydrated(self) -> asyncio.Future[None]:
        """Completes when the stored snapshot has been merged.

        Fails with :class:`~pyrbo.exceptions.RboStoreError` when the store
        read fails and :class:`~pyrbo.exceptions.RboDecodeError` when the
        stored document is malformed.  The live root is left untouched in
        both cases.
        """
        return self._hydrated

    async def wait_hydrated(self) -> None:
        await self._hydrated

    @property
    def has_pending_changes(self) -> bool:
        """Whether mutations happened since the last save started."""
        return self._dirty

    def on(self, kind: MutationKind | str, handler: Handler) -> Callable[[], None]:
        """Subscribe to ``set``/``delete``/``reset``/``save`` events (or ``"*"``)."""
        return self.events.on(kind, handler)

    def snapshot(self) -> Any:
        """Plain deep copy of the current root."""
        return to_plain(self._root)

    async def save(self) -> None:
        """Serialize the whole root and write it now, bypassing the debounce timer.

        Saves never overlap: a save waits for the previous one, and the root
        is serialized only once the write can start, so writes reach the
        store in the order they were serialized.

        Raises
        ------
        RboEncodeError
            If the root holds a value that is not JSON-serializable.
        RboStoreError
            If the store write fails.  Local state is kept; the next save
            writes it again.
        """
        await self._save(None)

    async def flush(self) -> None:
        """Write unsaved changes now instead of waiting for the timer."""
        self._debouncer.cancel()
        if self._save_tasks:
            await asyncio.gather(*self._save_tasks)
        if self._dirty:
            # A change made while waiting above re-armed the timer.
            self._debouncer.cancel()
            await self.save()

    def reset(self) -> asyncio.Task[None]:
        """Restore the default value and write it immediately.

        The root's contents are replaced in place, so references to
        :attr:`root` stay valid.  Keys missing from the default are removed.
        The default is serialized before this returns, so changes made
        afterwards are not part of the reset write; they are saved by the
        usual debounced write instead.  The write bypasses the debounce
        timer; the returned task completes when it has finished (write
        failures go to ``on_save_error``).
        """
        restored = copy.deepcopy(self._default)
        with self._tracker.muted():
            if isinstance(self._root, dict):
                self._root.clear()
                self._root.update(restored)
            else:
                self._root[:] = restored
        document = encode_document(self._root)
        self._dirty = False
        self._emit(MutationKind.RESET, ())
        self._debouncer.cancel()
        return self._start_save(document)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _emit(self, kind: MutationKind, path: Path) -> None:
        if not self.events.has_listeners():
            return
        self.events.emit(MutationEvent(kind=kind, path=path, value=self._root))

    def _on_mutation(self, kind: MutationKind, path: Path) -> None:
        self._dirty = True
        self._emit(kind, path)
        self._debouncer.trigger()

    async def _save(self, document: str | None) -> None:
        """Write *document*, or the current root when it is ``None``."""
        async with self._save_lock:
            try:
                if document is None:
                    self._dirty = False
                    document = encode_document(self._root)
                await self._store.set(self._key, document)
            except BaseException:
                self._dirty = True
                raise
        _logger.debug("Saved %s (%d chars)", self._key, len(document))
        self._emit(MutationKind.SAVE, ())

    def _start_save(self, document: str | None = None) -> asyncio.Task[None]:
        task = self._loop.create_task(self._background_save(document), name=f"pyrbo-save:{self._key}")
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)
        return task

    async def _background_save(self, document: str | None = None) -> None:
        try:
            await self._save(document)
        except Exception as exc:
            _logger.warning("Saving %s failed; retrying after the next change", self._key, exc_info=True)
            if self._on_save_error is not None:
                try:
                    self._on_save_error(exc)
                except Exception:
                    _logger.debug("on_save_error callback failed", exc_info=True)

    async def _hydrate(self) -> None:
        raw = await self._store.get(self._key)
        if not raw:
            _logger.debug("No stored snapshot for %s", self._key)
            return
        stored = decode_document(raw, key=self._key)
        self._merge(stored)
        _logger.debug("Hydrated %s from stored snapshot", self._key)

    def _merge(self, stored: Any) -> None:
        """Overlay top-level entries of *stored* onto the root as tracked writes."""
        root = self._root
        expected = dict if isinstance(root, dict) else list
        if not isinstance(stored, expected):
            raise RboDecodeError(
                f"Stored value under {self._key!r} is {type(stored).__name__}, expected {expected.__name__}",
                key=self._key,
                operation="get",
            )
        if isinstance(root, dict):
            root.update(stored)
            return
        for index, value in enumerate(stored):
            if index < len(root):
                root[index] = value
            else:
                root.append(value)

    def _log_hydrate_failure(self, task: asyncio.Future[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Hydrating %s failed: %s", self._key, exc)
