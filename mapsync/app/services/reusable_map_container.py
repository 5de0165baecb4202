from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from mapsync.domain.exceptions.map import MapOwnershipError
from mapsync.domain.models import MapNode

logger = logging.getLogger(__name__)

MAP_NODE_ID = "search-map"
DEFAULT_HIDDEN_HANDLE = "reusable-map-hidden"
HIDDEN_CLASS = "reusableMapHidden"
DEFAULT_LAYOUT_CLASS = "defaultMapLayout"


class Placement(str, Enum):
    CREATED = "created"
    MOVED = "moved"
    ALREADY_MOUNTED = "already_mounted"
    PARKED = "parked"


def is_parked(node: MapNode | None, hidden_handle: str = DEFAULT_HIDDEN_HANDLE) -> bool:
    """True when `node` or one of its ancestors carries the hidden handle."""

    while node is not None:
        if hidden_handle in node.classes:
            return True
        node = node.parent
    return False


@dataclass(slots=True)
class MapInstanceHandle:
    """Single-owner token for a live map instance.

    Whoever holds the handle may use the instance. `transfer` hands it to a
    new owner and revokes the previous one.
    """

    _owner: Any | None = None
    _instance: Any | None = None

    @property
    def has_instance(self) -> bool:
        return self._instance is not None

    @property
    def is_held(self) -> bool:
        return self._owner is not None

    def is_owner(self, owner: Any) -> bool:
        return owner is not None and self._owner is owner

    def adopt(self, owner: Any, instance: Any) -> None:
        if self._owner is not None and self._owner is not owner:
            raise MapOwnershipError("Map instance is held by another owner")
        self._owner = owner
        self._instance = instance

    def transfer(self, new_owner: Any) -> Any:
        if self._instance is None:
            raise MapOwnershipError("No map instance to transfer")
        self._owner = new_owner
        return self._instance

    def get(self, owner: Any) -> Any:
        if not self.is_owner(owner):
            raise MapOwnershipError("Map instance handle has been revoked")
        return self._instance

    def release(self, owner: Any) -> None:
        """Give up ownership, leaving the instance for the next owner."""

        self.get(owner)
        self._owner = None

    def discard(self, owner: Any) -> None:
        self.get(owner)
        self._owner = None
        self._instance = None


@dataclass(slots=True)
class ReusableMapContainer:
    """Keeps one map node alive across page visits.

    Creating a dynamic map is slow and billed per load on some providers, so
    the node is never destroyed: when its page goes away it is hidden and
    parked on the document body, and the next page adopts it again.
    """

    document_body: MapNode
    hidden_handle: str = DEFAULT_HIDDEN_HANDLE
    layout_class: str | None = None
    on_reattach: Callable[[MapNode], None] | None = None

    handle: MapInstanceHandle = field(default_factory=MapInstanceHandle)
    node: MapNode = field(init=False)
    mount_point: MapNode | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if not self.layout_class:
            logger.warning(
                "ReusableMapContainer should get a layout class; using defaults"
            )
        self.node = MapNode(
            id=MAP_NODE_ID, classes={self.layout_class or DEFAULT_LAYOUT_CLASS}
        )

    def _in_document(self) -> bool:
        current: MapNode | None = self.node
        while current is not None:
            if current is self.document_body:
                return True
            current = current.parent
        return False

    def render(
        self,
        mount_point: MapNode | None,
        render_children: Callable[[MapNode], None],
    ) -> Placement:
        """Place the map node and (re)render its children into it."""

        self.mount_point = mount_point

        if not self._in_document():
            if mount_point is not None and mount_point.first_child is None:
                mount_point.append_child(self.node)
                placement = Placement.CREATED
            else:
                self.document_body.append_child(self.node)
                placement = Placement.PARKED
            render_children(self.node)
            return placement

        if mount_point is None:
            render_children(self.node)
            return Placement.PARKED

        self.node.classes.discard(HIDDEN_CLASS)
        self.node.classes.discard(self.hidden_handle)

        if mount_point.first_child is None:
            # append_child detaches the node from the body first.
            mount_point.append_child(self.node)
            render_children(self.node)
            if self.on_reattach is not None:
                self.on_reattach(self.node)
            logger.debug("Reusable map moved into mount point")
            return Placement.MOVED

        render_children(self.node)
        if self.node.parent is mount_point:
            return Placement.ALREADY_MOUNTED
        return Placement.PARKED

    def park(self) -> None:
        """Hide the node and move it out of the page tree onto the body."""

        self.node.classes.add(HIDDEN_CLASS)
        self.node.classes.add(self.hidden_handle)
        self.document_body.append_child(self.node)
        self.mount_point = None
