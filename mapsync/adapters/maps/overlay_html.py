from __future__ import annotations

from html import escape

from mapsync.domain.models import MarkerKind, OverlayContent

LABEL_HANDLE = "SearchMapLabel"
INFO_CARD_HANDLE = "SearchMapInfoCard"
ACTIVE_LABEL_CLASS = "activeLabel"


def overlay_css_classes(content: OverlayContent) -> list[str]:
    if content.kind is MarkerKind.INFO_CARD:
        return [INFO_CARD_HANDLE]
    classes = [LABEL_HANDLE, f"{content.kind.value}Label"]
    if content.is_active:
        classes.append(ACTIVE_LABEL_CLASS)
    return classes


def render_overlay_html(content: OverlayContent) -> str:
    """Static markup for a label or info card overlay."""

    classes = " ".join(overlay_css_classes(content))
    listing_ids = ",".join(content.listing_ids)
    return (
        f'<div id="{escape(content.overlay_id)}" class="{classes}" '
        f'data-listing-ids="{escape(listing_ids)}">{escape(content.label)}</div>'
    )
