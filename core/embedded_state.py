"""Embedded hydration state in server-rendered marketplace pages.

The page format changes often, so extraction is a cascade of independent
strategies tried in order. Each returns a dict or None and never raises.
"""

import json
import logging
import re
from typing import Any, Callable, Iterator

log = logging.getLogger(__name__)

RELAY_SEARCH_RE = re.compile(r'\{"marketplace_search\S*?"\s*:\s*(\{.+?\})\s*,\s*"extensions"', re.S)
HYDRATION_SCRIPT_RE = re.compile(r"data-sjs>(\{.+?\})</script>", re.S)
FLAT_LISTING_RE = re.compile(
    r'"listing_id":"(\d+)"[^}]*"listing_title":"([^"]+)"[^}]*'
    r'"listing_price":\{[^}]*"amount":"([\d.]+)"[^}]*"currency":"([^"]+)"'
)

TITLE_KEYS = ("marketplace_listing_title", "listing_title")


def _parse_json(raw: str, strategy: str) -> dict | None:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log.debug(f"{strategy}: captured block is not JSON ({e})")
        return None
    return data if isinstance(data, dict) else None


def relay_search_state(html: str) -> dict | None:
    match = RELAY_SEARCH_RE.search(html)
    if not match:
        return None
    return _parse_json(match.group(1), "relay_search_state")


def hydration_script_state(html: str) -> dict | None:
    match = HYDRATION_SCRIPT_RE.search(html)
    if not match:
        return None
    return _parse_json(match.group(1), "hydration_script_state")


def flat_listing_tuples(html: str) -> dict | None:
    listings = [
        {"id": m.group(1), "title": m.group(2), "price": _to_float(m.group(3)), "currency": m.group(4)}
        for m in FLAT_LISTING_RE.finditer(html)
    ]
    if not listings:
        return None
    return {"extracted_listings": listings}


STRATEGIES: tuple[Callable[[str], dict | None], ...] = (
    relay_search_state,
    hydration_script_state,
    flat_listing_tuples,
)


def extract_state(html: str) -> dict | None:
    for strategy in STRATEGIES:
        state = strategy(html)
        if state is not None:
            log.debug(f"Embedded state found by {strategy.__name__}")
            return state
    log.debug("No embedded state found")
    return None


def _walk(node: Any) -> Iterator[dict]:
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            yield current
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


def _to_float(value: Any) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


def _dig(node: dict, *keys: str) -> dict:
    for key in keys:
        node = node.get(key)
        if not isinstance(node, dict):
            return {}
    return node


def _listing_from_node(node: dict) -> dict | None:
    title = next((node[k] for k in TITLE_KEYS if isinstance(node.get(k), str)), None)
    listing_id = node.get("id") or node.get("listing_id")
    if title is None or not listing_id:
        return None

    price = _dig(node, "listing_price")
    return {
        "id": str(listing_id),
        "title": title,
        "price": _to_float(price.get("amount")),
        "currency": price.get("currency") or "USD",
        "location": _dig(node, "location", "reverse_geocode").get("city") or "",
    }


def listings_from_state(state: dict | None) -> list[dict]:
    """Flatten whatever state the cascade found into listing tuples.

    Tuples from the flat scan are returned as they are. Relay and hydration
    state is walked for nodes that carry a listing title and an id. Order is
    document order.
    """
    if not state:
        return []
    if "extracted_listings" in state:
        return list(state["extracted_listings"])

    found = []
    for node in _walk(state):
        listing = _listing_from_node(node)
        if listing:
            found.append(listing)
    return found
