"""Weak association table between primary objects and related secondary objects."""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Any, List

from ..core.components import DesignerHost
from ..core.exceptions import ArgumentNullError, DuplicateAssociationError, InvalidAssociationError
from ..core.weak import IdentityWeakMap

logger = logging.getLogger(__name__)


class AssociationTable:
    """Maps a primary object to weak references of its associated objects.

    Neither side is kept alive by the table. References to collected
    secondary objects are purged when the primary's list is next scanned.
    """

    def __init__(self, trace: bool = False) -> None:
        self._trace = trace
        self._lock = threading.Lock()
        self._table: IdentityWeakMap[List[weakref.ref]] = IdentityWeakMap()

    def create(self, primary: Any, secondary: Any) -> None:
        """Associate ``secondary`` with ``primary``.

        Raises
        ------
        InvalidAssociationError
            If ``primary`` and ``secondary`` are the same object.
        DuplicateAssociationError
            If ``secondary`` is already associated with ``primary``.
        """
        if primary is None:
            raise ArgumentNullError("primary")
        if secondary is None:
            raise ArgumentNullError("secondary")
        if primary is secondary:
            raise InvalidAssociationError("An object cannot be associated with itself")
        reference = weakref.ref(secondary)
        with self._lock:
            associations = self._table.get(primary)
            if associations is None:
                associations = []
                self._table[primary] = associations
            elif any(ref() is secondary for ref in associations):
                raise DuplicateAssociationError(
                    f"{type(secondary).__name__} is already associated with this {type(primary).__name__}"
                )
            associations.append(reference)

    def get(self, target_type: type, primary: Any) -> Any:
        """Return the newest live associated object that is a ``target_type``.

        ``primary`` itself is returned when it already is a ``target_type``
        or when nothing else is found. A sited component in design mode falls
        back to its designer when the designer is a ``target_type``.
        """
        if target_type is None:
            raise ArgumentNullError("type")
        if primary is None:
            raise ArgumentNullError("primary")
        if isinstance(primary, target_type):
            return primary

        with self._lock:
            associations = self._table.get(primary)
            if associations is not None:
                for idx in range(len(associations) - 1, -1, -1):
                    secondary = associations[idx]()
                    if secondary is None:
                        if self._trace:
                            logger.debug("Associations : Removing dead reference in association table")
                        del associations[idx]
                    elif isinstance(secondary, target_type):
                        if self._trace:
                            logger.debug(
                                f"Associations : Associated {type(primary).__name__} "
                                f"to {type(secondary).__name__}"
                            )
                        return secondary

        site = getattr(primary, "site", None)
        if site is not None and getattr(site, "design_mode", False):
            host = site.get_service(DesignerHost)
            if host is not None:
                designer = host.get_designer(primary)
                if designer is not None and isinstance(designer, target_type):
                    return designer
        return primary

    def remove(self, primary: Any, secondary: Any) -> None:
        """Remove the association between ``primary`` and ``secondary``, if any."""
        if primary is None:
            raise ArgumentNullError("primary")
        if secondary is None:
            raise ArgumentNullError("secondary")
        with self._lock:
            associations = self._table.get(primary)
            if associations is None:
                return
            for idx in range(len(associations) - 1, -1, -1):
                target = associations[idx]()
                if target is None or target is secondary:
                    del associations[idx]

    def remove_all(self, primary: Any) -> None:
        """Remove every association of ``primary``."""
        if primary is None:
            raise ArgumentNullError("primary")
        with self._lock:
            if primary in self._table:
                del self._table[primary]

    def associated(self, primary: Any) -> List[Any]:
        """Return the live objects associated with ``primary``, oldest first."""
        with self._lock:
            associations = self._table.get(primary) or []
            return [target for target in (ref() for ref in associations) if target is not None]
