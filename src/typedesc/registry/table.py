"""Provider table: maps types and weakly held instances to provider chains.

Chains are singly linked lists of :class:`~typedesc.registry.chain.ChainNode`,
most recently registered provider first. Type chains without an own entry
resolve through the lineage of the type down to the root node, which wraps
the reflection provider and is registered for ``object``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Set, Tuple

from ..core.attributes import TypeDescriptionProviderAttribute, declared_attributes
from ..core.exceptions import ArgumentNullError
from ..core.weak import IdentityWeakMap, is_weak_referenceable
from ..providers.core import TypeDescriptionProvider
from ..providers.delegating import DelegatingTypeDescriptionProvider
from ..providers.reflection import ReflectionTypeDescriptionProvider
from .chain import ChainNode

logger = logging.getLogger(__name__)


class InterfaceMarker:
    """Lineage step shared by every protocol, between the protocol and ``object``."""


def is_protocol(tp: Any) -> bool:
    """Return True if ``tp`` is a ``typing.Protocol`` class."""
    return isinstance(tp, type) and bool(getattr(tp, "_is_protocol", False))


def lineage(tp: type) -> Tuple[type, ...]:
    """Return the types searched for a provider chain, ``tp`` first, ``object`` last."""
    if not isinstance(tp, type):
        raise TypeError(f"{tp!r} is not a class")
    if is_protocol(tp):
        return (tp, InterfaceMarker, object)
    return tp.__mro__


class ProviderTable:
    """Provider chains keyed by type (strongly) or by instance (weakly).

    Parameters
    ----------
    root : ReflectionTypeDescriptionProvider
        Provider wrapped by the root node every lineage ends at.
    trace : bool, optional
        Log node allocations at DEBUG level, by default False.
    """

    def __init__(self, root: ReflectionTypeDescriptionProvider, trace: bool = False):
        self.root_provider = root
        self._trace = trace
        # Reentrant: registering a default provider looks the type up again.
        self._lock = threading.RLock()
        self._type_chains: Dict[type, ChainNode] = {}
        self._instance_chains: IdentityWeakMap[ChainNode] = IdentityWeakMap()
        self._lookup: Dict[Tuple[type, bool, bool], ChainNode] = {}
        self._default_checked: Set[type] = set()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def _root(self) -> ChainNode:
        node = self._type_chains.get(object)
        if node is None:
            with self._lock:
                node = self._type_chains.get(object)
                if node is None:
                    node = ChainNode(self.root_provider)
                    self._type_chains[object] = node
                    if self._trace:
                        logger.debug(f"Allocated root node. Now {len(self._type_chains)} type nodes")
        return node

    def _check_default_providers(self, tp: type) -> None:
        pending = [t for t in lineage(tp) if t not in self._default_checked]
        if not pending:
            return
        with self._lock:
            for search in pending:
                if search in self._default_checked:
                    continue
                self._default_checked.add(search)
                for attr in declared_attributes(search):
                    if isinstance(attr, TypeDescriptionProviderAttribute):
                        provider = attr.provider_type()
                        self.add(provider, search)
                        logger.info(
                            f"Registered default provider {type(provider).__qualname__} "
                            f"declared on {search.__qualname__}"
                        )

    def _find(self, tp: type, create_delegator: bool, inclusive: bool) -> ChainNode:
        cache_key = (tp, create_delegator, inclusive)
        node = self._lookup.get(cache_key)
        if node is not None:
            return node
        searched = lineage(tp)
        if not inclusive:
            searched = searched[1:]
        # The walk and the insert must not interleave with add or remove.
        with self._lock:
            node = self._lookup.get(cache_key)
            if node is not None:
                return node
            for search in searched:
                if search is object:
                    break
                node = self._type_chains.get(search)
                if node is not None:
                    break
                if search is tp and create_delegator:
                    node = ChainNode(DelegatingTypeDescriptionProvider(self, tp, inclusive=False))
                    if self._trace:
                        logger.debug(f"Allocated delegating node for {tp.__qualname__}")
                    break
            if node is None:
                node = self._root()
            self._lookup[cache_key] = node
        return node

    def node_for_type(self, tp: type, create_delegator: bool = False) -> ChainNode:
        """Return the head node answering for ``tp``.

        Parameters
        ----------
        tp : type
            The type to look up.
        create_delegator : bool, optional
            When ``tp`` has no chain of its own, return a node delegating to
            the chain of its bases instead of that chain itself, so that later
            registrations on the bases stay visible, by default False.

        Returns
        -------
        ChainNode
            Never None: every lineage ends at the root node.
        """
        if tp is None:
            raise ArgumentNullError("type")
        self._check_default_providers(tp)
        return self._find(tp, create_delegator, inclusive=True)

    def node_for_instance(self, instance: Any, create_delegator: bool = False) -> ChainNode:
        """Return the head node answering for ``instance``.

        Instances without a chain of their own resolve through their type; with
        ``create_delegator`` a node delegating to that type is returned.
        """
        if instance is None:
            raise ArgumentNullError("instance")
        node = self._instance_chains.get(instance)
        if node is not None:
            return node
        if create_delegator:
            if self._trace:
                logger.debug(f"Allocated delegating node for an instance of {type(instance).__qualname__}")
            return ChainNode(DelegatingTypeDescriptionProvider(self, type(instance), inclusive=True))
        return self.node_for_type(type(instance))

    def node_for(self, key: Any, create_delegator: bool = False) -> ChainNode:
        if isinstance(key, type):
            return self.node_for_type(key, create_delegator)
        return self.node_for_instance(key, create_delegator)

    def resolve(self, tp: type, inclusive: bool = True) -> ChainNode:
        """Return the node answering for ``tp``, or for its bases when not ``inclusive``."""
        self._check_default_providers(tp)
        return self._find(tp, create_delegator=False, inclusive=inclusive)

    def add(self, provider: TypeDescriptionProvider, key: Any) -> ChainNode:
        """Put ``provider`` at the head of the chain of ``key`` and return the new head."""
        if provider is None:
            raise ArgumentNullError("provider")
        if key is None:
            raise ArgumentNullError("key")
        with self._lock:
            head = ChainNode(provider)
            if isinstance(key, type):
                head.next = self.node_for_type(key, create_delegator=True)
                self._type_chains[key] = head
            else:
                if not is_weak_referenceable(key):
                    raise TypeError(
                        f"Providers cannot be registered for {type(key).__qualname__} "
                        "instances: they do not support weak references"
                    )
                head.next = self.node_for_instance(key, create_delegator=True)
                self._instance_chains[key] = head
            self._lookup.clear()
        return head

    def remove(self, provider: TypeDescriptionProvider, key: Any) -> bool:
        """Remove ``provider`` from the chain of ``key``.

        The removed node takes over the provider and the link of the node
        following it, so nodes handed out earlier keep answering with the
        remaining chain. Returns False if ``provider`` was not registered.
        """
        if provider is None:
            raise ArgumentNullError("provider")
        if key is None:
            raise ArgumentNullError("key")
        is_type = isinstance(key, type)
        with self._lock:
            head = self._type_chains.get(key) if is_type else self._instance_chains.get(key)
            target = head
            while target is not None and target.provider is not provider:
                target = target.next
            if target is None:
                return False

            if target.next is not None:
                target.provider = target.next.provider
                target.next = target.next.next
                if target is head and isinstance(target.provider, DelegatingTypeDescriptionProvider):
                    self._drop(key, is_type)
            elif target is not head:
                if is_type:
                    target.provider = DelegatingTypeDescriptionProvider(self, key, inclusive=False)
                else:
                    target.provider = DelegatingTypeDescriptionProvider(self, type(key), inclusive=True)
            else:
                self._drop(key, is_type)
            self._lookup.clear()
        return True

    def _drop(self, key: Any, is_type: bool) -> None:
        if is_type:
            del self._type_chains[key]
        else:
            del self._instance_chains[key]

    def type_entries(self) -> List[Tuple[type, ChainNode]]:
        """Snapshot of the type chains, root included once created."""
        with self._lock:
            return list(self._type_chains.items())

    def instance_entries(self) -> List[Tuple[Any, ChainNode]]:
        """Snapshot of the live instance chains."""
        with self._lock:
            return self._instance_chains.items_snapshot()

    def has_chain(self, key: Any) -> bool:
        if isinstance(key, type):
            return key in self._type_chains
        return key in self._instance_chains
