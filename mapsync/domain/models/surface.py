from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False, slots=True)
class MapNode:
    """Minimal DOM-like node the map is rendered into.

    `append_child` adopts the node: it is detached from its previous parent
    first, and its own children travel with it untouched.
    """

    id: str | None = None
    classes: set[str] = field(default_factory=set)
    offset_width: int = 0
    offset_height: int = 0
    style: dict[str, str] = field(default_factory=dict)
    html: str = ""
    parent: MapNode | None = field(default=None, repr=False)
    children: list[MapNode] = field(default_factory=list, repr=False)
    data: dict[str, Any] = field(default_factory=dict, repr=False)

    def append_child(self, child: MapNode) -> None:
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)

    def remove_child(self, child: MapNode) -> None:
        if child.parent is not self:
            raise ValueError("Node is not a child of this node")
        self.children.remove(child)
        child.parent = None

    @property
    def first_child(self) -> MapNode | None:
        return self.children[0] if self.children else None

    @property
    def has_dimensions(self) -> bool:
        return self.offset_width > 0 and self.offset_height > 0
