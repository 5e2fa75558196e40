"""Observable containers.

A :class:`Tracker` turns plain JSON-like data (``dict``, ``list``,
``tuple``) into :class:`TrackedDict` / :class:`TrackedList` nodes, all the
way down.  Every mutating method on a node applies the change to the
underlying storage first and then reports ``(kind, path)`` to the tracker.
Containers inserted later are wrapped on insert, so a subtree attached to
the root is observable from the moment it is attached.

Paths are tuples of strings from the root.  Writes and deletes of a single
key or index report the path of that key or index; operations touching the
whole container (slice assignment, ``sort``, ``reverse``, list ``clear``)
report the container's own path.
"""

from __future__ import annotations

import contextlib
import operator
from collections.abc import Callable, Iterable, Iterator
from typing import Any, SupportsIndex

from pyrbo.tracking.events import MutationKind

Path = tuple[str, ...]
MutationCallback = Callable[[MutationKind, Path], None]


def _key(key: Any) -> str:
    return key if isinstance(key, str) else str(key)


class Tracker:
    """Owns the mutation callback shared by every node of one tracked graph."""

    def __init__(self, on_mutation: MutationCallback) -> None:
        self._on_mutation = on_mutation
        self._muted = 0

    def wrap(self, value: Any, path: Iterable[str] = ()) -> Any:
        """Return an observable version of *value* located at *path*.

        Primitives are returned unchanged.  A node already owned by this
        tracker at the same path is returned as is; any other tracked node
        is rebuilt from its plain contents so it is never wrapped twice.
        """
        path = tuple(path)
        if isinstance(value, (TrackedDict, TrackedList)):
            if value._tracker is self and value._path == path:
                return value
            value = to_plain(value)
        if isinstance(value, dict):
            return TrackedDict(self, path, value.items())
        if isinstance(value, (list, tuple)):
            return TrackedList(self, path, value)
        return value

    def notify(self, kind: MutationKind, path: Path) -> None:
        if self._muted:
            return
        self._on_mutation(kind, path)

    @property
    def is_muted(self) -> bool:
        return self._muted > 0

    @contextlib.contextmanager
    def muted(self) -> Iterator[None]:
        """Apply mutations without reporting them (bulk internal rewrites)."""
        self._muted += 1
        try:
            yield
        finally:
            self._muted -= 1


#: Owner of nodes removed from a graph; their mutations go nowhere.
_DETACHED = Tracker(lambda kind, path: None)


def is_tracked(value: Any) -> bool:
    return isinstance(value, (TrackedDict, TrackedList))


def to_plain(value: Any) -> Any:
    """Deep-copy a (possibly tracked) value into plain dicts and lists."""
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def _detach(value: Any) -> None:
    """Stop a node that left the graph (and its subtree) from reporting into it."""
    if not is_tracked(value):
        return
    value._tracker = _DETACHED
    children = value.values() if isinstance(value, dict) else value
    for child in children:
        _detach(child)


def _release(value: Any) -> Any:
    _detach(value)
    return to_plain(value) if is_tracked(value) else value


class TrackedDict(dict):  # type: ignore[type-arg]
    """A ``dict`` that reports every write and delete to its tracker."""

    __slots__ = ("_tracker", "_path")

    def __init__(self, tracker: Tracker, path: Path = (), items: Iterable[tuple[Any, Any]] = ()) -> None:
        super().__init__()
        self._tracker = tracker
        self._path = tuple(path)
        for key, value in items:
            dict.__setitem__(self, key, tracker.wrap(value, (*self._path, _key(key))))

    @property
    def path(self) -> Path:
        return self._path

    def _rebase(self, path: Path) -> None:
        self._path = path
        for key, value in dict.items(self):
            if is_tracked(value):
                value._rebase((*path, _key(key)))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def __setitem__(self, key: Any, value: Any) -> None:
        path = (*self._path, _key(key))
        previous = dict.get(self, key)
        wrapped = self._tracker.wrap(value, path)
        dict.__setitem__(self, key, wrapped)
        if previous is not wrapped:
            _detach(previous)
        self._tracker.notify(MutationKind.SET, path)

    def update(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def setdefault(self, key: Any, default: Any = None) -> Any:
        if key not in self:
            self[key] = default
        return dict.__getitem__(self, key)

    def __ior__(self, other: Any) -> TrackedDict:  # type: ignore[override]
        self.update(other)
        return self

    @classmethod
    def fromkeys(cls, iterable: Iterable[Any], value: Any = None) -> dict[Any, Any]:  # type: ignore[override]
        # A new dict has no place in any graph, so it is plain.
        return dict.fromkeys(iterable, value)

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    def __delitem__(self, key: Any) -> None:
        previous = dict.__getitem__(self, key)
        dict.__delitem__(self, key)
        _detach(previous)
        self._tracker.notify(MutationKind.DELETE, (*self._path, _key(key)))

    def pop(self, key: Any, *default: Any) -> Any:
        if key not in self:
            if default:
                return default[0]
            raise KeyError(key)
        value = dict.pop(self, key)
        self._tracker.notify(MutationKind.DELETE, (*self._path, _key(key)))
        return _release(value)

    def popitem(self) -> tuple[Any, Any]:
        key, value = dict.popitem(self)
        self._tracker.notify(MutationKind.DELETE, (*self._path, _key(key)))
        return key, _release(value)

    def clear(self) -> None:
        removed = list(dict.items(self))
        dict.clear(self)
        for key, value in removed:
            _detach(value)
            self._tracker.notify(MutationKind.DELETE, (*self._path, _key(key)))

    # ------------------------------------------------------------------
    # Copies never carry the tracker
    # ------------------------------------------------------------------

    def __copy__(self) -> dict[Any, Any]:
        return dict(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> dict[Any, Any]:
        return to_plain(self)  # type: ignore[no-any-return]

    def __reduce_ex__(self, protocol: SupportsIndex) -> tuple[Any, ...]:
        return (dict, (to_plain(self),))


class TrackedList(list):  # type: ignore[type-arg]
    """A ``list`` that reports every write and delete to its tracker."""

    __slots__ = ("_tracker", "_path")

    def __init__(self, tracker: Tracker, path: Path = (), items: Iterable[Any] = ()) -> None:
        self._tracker = tracker
        self._path = tuple(path)
        super().__init__(tracker.wrap(value, (*self._path, str(index))) for index, value in enumerate(items))

    @property
    def path(self) -> Path:
        return self._path

    def _rebase(self, path: Path) -> None:
        self._path = path
        self._rebase_from(0)

    def _rebase_from(self, start: int) -> None:
        """Refresh child paths after elements shifted position."""
        for index in range(start, len(self)):
            value = list.__getitem__(self, index)
            if is_tracked(value):
                value._rebase((*self._path, str(index)))

    def _wrap_at(self, index: int, value: Any) -> Any:
        return self._tracker.wrap(value, (*self._path, str(index)))

    def _wrap_new(self, index: int, value: Any) -> Any:
        # Elements shift around a new entry, so an existing node would end
        # up at two indices; always insert a fresh copy.
        if is_tracked(value):
            value = to_plain(value)
        return self._wrap_at(index, value)

    def _normalize(self, index: SupportsIndex) -> int:
        position = operator.index(index)
        return position + len(self) if position < 0 else position

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            self._set_slice(index, value)
            return
        position = self._normalize(index)
        previous = list.__getitem__(self, index)
        wrapped = self._wrap_at(position, value)
        list.__setitem__(self, index, wrapped)
        if previous is not wrapped:
            _detach(previous)
        self._tracker.notify(MutationKind.SET, (*self._path, str(position)))

    def _set_slice(self, index: slice, value: Iterable[Any]) -> None:
        start, stop, step = index.indices(len(self))
        items = list(value)
        if step == 1:
            targets = range(start, start + len(items))
        else:
            targets = range(start, stop, step)
        if len(targets) == len(items):
            items = [self._wrap_new(target, item) for target, item in zip(targets, items, strict=True)]
        removed = list.__getitem__(self, index)
        # Mismatched extended slices raise from list itself.
        list.__setitem__(self, index, items)
        for item in removed:
            _detach(item)
        if step == 1:
            self._rebase_from(start)
        self._tracker.notify(MutationKind.SET, self._path)

    def append(self, value: Any) -> None:
        position = len(self)
        list.append(self, self._wrap_at(position, value))
        self._tracker.notify(MutationKind.SET, (*self._path, str(position)))

    def extend(self, values: Iterable[Any]) -> None:
        for value in list(values):
            self.append(value)

    def __iadd__(self, values: Iterable[Any]) -> TrackedList:  # type: ignore[override]
        self.extend(values)
        return self

    def insert(self, index: SupportsIndex, value: Any) -> None:
        size = len(self)
        position = operator.index(index)
        if position < 0:
            position = max(size + position, 0)
        position = min(position, size)
        list.insert(self, position, self._wrap_new(position, value))
        self._rebase_from(position + 1)
        self._tracker.notify(MutationKind.SET, (*self._path, str(position)))

    def sort(self, *args: Any, **kwargs: Any) -> None:
        list.sort(self, *args, **kwargs)
        self._rebase_from(0)
        self._tracker.notify(MutationKind.SET, self._path)

    def reverse(self) -> None:
        list.reverse(self)
        self._rebase_from(0)
        self._tracker.notify(MutationKind.SET, self._path)

    def __imul__(self, count: SupportsIndex) -> TrackedList:  # type: ignore[override]
        # Repeating must not alias one node at several indices.
        self[:] = [to_plain(value) for value in self] * operator.index(count)
        return self

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    def __delitem__(self, index: Any) -> None:
        removed = list.__getitem__(self, index)
        if isinstance(index, slice):
            list.__delitem__(self, index)
            for item in removed:
                _detach(item)
            self._rebase_from(0)
            self._tracker.notify(MutationKind.DELETE, self._path)
            return
        position = self._normalize(index)
        list.__delitem__(self, index)
        _detach(removed)
        self._rebase_from(position)
        self._tracker.notify(MutationKind.DELETE, (*self._path, str(position)))

    def pop(self, index: SupportsIndex = -1) -> Any:
        position = self._normalize(index)
        value = list.pop(self, index)
        self._rebase_from(position)
        self._tracker.notify(MutationKind.DELETE, (*self._path, str(position)))
        return _release(value)

    def remove(self, value: Any) -> None:
        del self[self.index(value)]

    def clear(self) -> None:
        if not self:
            return
        removed = list(list.__iter__(self))
        list.clear(self)
        for item in removed:
            _detach(item)
        self._tracker.notify(MutationKind.DELETE, self._path)

    # ------------------------------------------------------------------
    # Copies never carry the tracker
    # ------------------------------------------------------------------

    def __copy__(self) -> list[Any]:
        return list(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> list[Any]:
        return to_plain(self)  # type: ignore[no-any-return]

    def __reduce_ex__(self, protocol: SupportsIndex) -> tuple[Any, ...]:
        return (list, (to_plain(self),))
