from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from mapsync.app.ports.output import IMapProvider
from mapsync.domain.algorithms.markers import group_by_coordinates
from mapsync.domain.models import (
    Coordinate,
    Listing,
    ListingMarkerGroup,
    MarkerKind,
    OverlayContent,
    OverlayPane,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RenderedMarker:
    marker_id: str
    position: Coordinate
    content: OverlayContent
    overlay: Any


@dataclass(slots=True)
class RenderedInfoCard:
    position: Coordinate
    content: OverlayContent
    overlay: Any

    @property
    def listing_ids(self) -> tuple[str, ...]:
        return self.content.listing_ids


@dataclass(frozen=True, slots=True)
class MarkerDiff:
    created: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()


def _format_price(price: float, currency: str | None) -> str:
    amount = f"{price:,.0f}" if float(price).is_integer() else f"{price:,.2f}"
    return f"{amount} {currency}" if currency else amount


def marker_label(group: ListingMarkerGroup) -> str:
    """Price for a single listing, listing count for a group."""

    if group.kind is MarkerKind.GROUP:
        return str(len(group.listings))
    listing = group.listings[0]
    if listing.price is None:
        return ""
    return _format_price(listing.price, listing.currency)


def is_suppressed(group: ListingMarkerGroup, info_card_ids: set[str]) -> bool:
    # The card is drawn in place of the label it was opened from.
    return any(listing_id in info_card_ids for listing_id in group.listing_ids)


@dataclass(slots=True)
class MarkerLifecycleManager:
    """Keeps one overlay per listing group and reuses it across frames.

    Overlays are keyed by `ListingMarkerGroup.marker_id`. On every render
    the new groups are diffed against what is on the map: existing overlays
    are updated in place, missing ones created and stale ones removed. The
    info card has a single slot of its own, always in the float pane.
    """

    provider: IMapProvider
    markers: dict[str, RenderedMarker] = field(default_factory=dict)
    info_card: RenderedInfoCard | None = None

    def render(
        self,
        map_handle: Any,
        listings: Iterable[Listing],
        *,
        active_listing_id: str | None = None,
        info_card_open: Iterable[str] = (),
    ) -> MarkerDiff:
        listings = list(listings)
        open_ids = tuple(info_card_open)
        open_set = set(open_ids)

        # Later groups are drawn first so earlier listings end up on top.
        wanted: dict[str, tuple[Coordinate, OverlayContent]] = {}
        for group in reversed(group_by_coordinates(listings)):
            if is_suppressed(group, open_set):
                continue
            wanted[group.marker_id] = (
                group.coordinate,
                OverlayContent(
                    overlay_id=group.marker_id,
                    kind=group.kind,
                    listing_ids=group.listing_ids,
                    label=marker_label(group),
                    is_active=active_listing_id is not None
                    and active_listing_id in group.listing_ids,
                ),
            )

        removed: list[str] = []
        for marker_id in list(self.markers):
            if marker_id not in wanted:
                rendered = self.markers.pop(marker_id)
                self.provider.remove_overlay(map_handle, rendered.overlay)
                removed.append(marker_id)

        created: list[str] = []
        updated: list[str] = []
        for marker_id, (position, content) in wanted.items():
            rendered = self.markers.get(marker_id)
            if rendered is None:
                overlay = self.provider.add_overlay(
                    map_handle,
                    position=position,
                    content=content,
                    pane=OverlayPane.LABEL,
                )
                self.markers[marker_id] = RenderedMarker(
                    marker_id=marker_id, position=position, content=content, overlay=overlay
                )
                created.append(marker_id)
            elif rendered.position != position or rendered.content != content:
                self.provider.update_overlay(
                    rendered.overlay, position=position, content=content
                )
                rendered.position = position
                rendered.content = content
                updated.append(marker_id)

        self._render_info_card(map_handle, listings, open_ids)

        if created or removed:
            logger.debug(
                "Markers diffed",
                extra={"created": len(created), "removed": len(removed)},
            )
        return MarkerDiff(
            created=tuple(created), updated=tuple(updated), removed=tuple(removed)
        )

    def _render_info_card(
        self, map_handle: Any, listings: list[Listing], open_ids: tuple[str, ...]
    ) -> None:
        by_id = {listing.id: listing for listing in listings}
        card_listings = [
            by_id[listing_id]
            for listing_id in open_ids
            if listing_id in by_id and by_id[listing_id].geolocation is not None
        ]
        if not card_listings:
            self._close_info_card(map_handle)
            return

        first = card_listings[0]
        position = first.geolocation
        listing_ids = tuple(listing.id for listing in card_listings)
        content = OverlayContent(
            overlay_id=f"{MarkerKind.INFO_CARD.value}_{first.id}",
            kind=MarkerKind.INFO_CARD,
            listing_ids=listing_ids,
            label=first.title or "",
        )

        current = self.info_card
        if current is not None and current.content == content and current.position == position:
            return

        self._close_info_card(map_handle)
        overlay = self.provider.add_overlay(
            map_handle, position=position, content=content, pane=OverlayPane.FLOAT
        )
        self.info_card = RenderedInfoCard(position=position, content=content, overlay=overlay)

    def _close_info_card(self, map_handle: Any) -> None:
        if self.info_card is None:
            return
        self.provider.remove_overlay(map_handle, self.info_card.overlay)
        self.info_card = None

    def clear(self, map_handle: Any) -> None:
        for rendered in self.markers.values():
            self.provider.remove_overlay(map_handle, rendered.overlay)
        self.markers.clear()
        self._close_info_card(map_handle)
