"""Identity keyed weak mapping.

``weakref.WeakKeyDictionary`` hashes and compares keys with their own
``__hash__``/``__eq__``. Described objects may override both (or be
unhashable), so the tables of this package key entries by object identity
instead, while still never keeping the key alive.
"""

from __future__ import annotations

import weakref
from typing import Any, Callable, Dict, Generic, Iterator, MutableMapping, Tuple, TypeVar

V = TypeVar("V")


def is_weak_referenceable(obj: Any) -> bool:
    """Return True if ``obj`` can be the target of a weak reference."""
    try:
        weakref.ref(obj)
    except TypeError:
        return False
    return True


def weak_handle(obj: Any) -> Callable[[], Any]:
    """Return a callable giving back ``obj`` without keeping it alive.

    Objects that cannot be weakly referenced are held strongly.
    """
    if is_weak_referenceable(obj):
        return weakref.ref(obj)
    return lambda: obj


class IdentityWeakMap(MutableMapping[Any, V], Generic[V]):
    """Mapping from weakly held objects, compared by identity, to values.

    Entries are dropped automatically once their key is garbage collected.
    Keys that do not support weak references raise ``TypeError`` on insertion.
    """

    def __init__(self) -> None:
        self._data: Dict[int, Tuple[weakref.ref, V]] = {}
        self_ref = weakref.ref(self)

        def _remove(ref: weakref.ref, key_id: int) -> None:
            owner = self_ref()
            if owner is None:
                return
            entry = owner._data.get(key_id)
            # The id may already have been reused by a newer key.
            if entry is not None and entry[0] is ref:
                del owner._data[key_id]

        self._remove = _remove

    def _entry(self, key: Any) -> Tuple[weakref.ref, V]:
        entry = self._data.get(id(key))
        if entry is None or entry[0]() is not key:
            raise KeyError(key)
        return entry

    def __getitem__(self, key: Any) -> V:
        return self._entry(key)[1]

    def __setitem__(self, key: Any, value: V) -> None:
        key_id = id(key)
        entry = self._data.get(key_id)
        if entry is not None and entry[0]() is key:
            self._data[key_id] = (entry[0], value)
            return
        remove = self._remove
        ref = weakref.ref(key, lambda r, key_id=key_id: remove(r, key_id))
        self._data[key_id] = (ref, value)

    def __delitem__(self, key: Any) -> None:
        self._entry(key)
        del self._data[id(key)]

    def __contains__(self, key: object) -> bool:
        entry = self._data.get(id(key))
        return entry is not None and entry[0]() is key

    def __iter__(self) -> Iterator[Any]:
        for ref, _value in list(self._data.values()):
            obj = ref()
            if obj is not None:
                yield obj

    def __len__(self) -> int:
        return sum(1 for ref, _value in list(self._data.values()) if ref() is not None)

    def items_snapshot(self) -> list:
        """Return the live ``(key, value)`` pairs as a list."""
        pairs = []
        for ref, value in list(self._data.values()):
            obj = ref()
            if obj is not None:
                pairs.append((obj, value))
        return pairs

    def setdefault(self, key: Any, default: V) -> V:  # type: ignore[override]
        try:
            return self[key]
        except KeyError:
            self[key] = default
            return default
