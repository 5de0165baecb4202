from __future__ import annotations

import re
from typing import Any, Mapping

from mapsync.domain.models import AddressComponents

_ZIP_RE = re.compile(r"(\d{5}(?:-\d{4})?)")
_STATE_CODE_RE = re.compile(r"\s+([A-Z]{2,3})\s*$")


def _first_present(addr: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = addr.get(key)
        if value:
            return str(value)
    return None


def format_address(place: Mapping[str, Any], *, home_country: str | None) -> str:
    """Build a delivery-style address line from a structured place result.

    County is never included. Country is left out when it is the home
    country. Falls back to the provider's `display_name`.
    """

    display_name = str(place.get("display_name") or "")
    addr = place.get("address")
    if not isinstance(addr, Mapping) or not addr:
        return display_name

    components: list[str] = []

    house_number = addr.get("house_number")
    road = addr.get("road")
    if house_number and road:
        components.append(f"{house_number} {road}")
    elif road:
        components.append(str(road))
    elif house_number:
        components.append(str(house_number))

    locality = _first_present(addr, "city", "town", "village", "municipality")
    if locality:
        components.append(locality)

    region = _first_present(addr, "state", "province")
    if region:
        components.append(region)

    if addr.get("postcode"):
        components.append(str(addr["postcode"]))

    country = addr.get("country")
    if country and country != home_country:
        components.append(str(country))

    return ", ".join(components) if components else display_name


def _split_zip(part: str) -> tuple[str, str]:
    """Return (rest, zip) for a part that may carry a ZIP code."""

    match = _ZIP_RE.search(part)
    if not match:
        return part, ""
    return part.replace(match.group(1), "").strip(), match.group(1)


def parse_address_components(address: str | None) -> AddressComponents:
    """Pick city, state and postal code out of a formatted address line.

    Handles "Street, City, State ZIP", "City, State ZIP", "City, State" and
    single-part lines such as "Springfield IL" or "Springfield 62704".
    """

    if not address:
        return AddressComponents()

    parts = [part.strip() for part in address.split(",")]

    city = ""
    state = ""
    postal_code = ""

    if len(parts) >= 2:
        state, postal_code = _split_zip(parts[-1])
        city = parts[-2]
    else:
        single = parts[0]
        state_match = _STATE_CODE_RE.search(single)
        if state_match:
            state = state_match.group(1)
            city = single[: state_match.start()].strip()
        else:
            city, postal_code = _split_zip(single)

    return AddressComponents(
        city=city.strip(",").strip(),
        state=state.strip(",").strip(),
        postal_code=postal_code.strip(",").strip(),
    )
