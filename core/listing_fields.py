"""Markup-level field scraping for marketplace pages.

Used for single listing pages, and for search pages when no embedded state
could be parsed. Every field is matched on its own and falls back to its
default, so a page with most markers missing still yields a Listing.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Iterator

from core.models import DEFAULT_CURRENCY, MAX_LISTING_IMAGES, Category, Listing, Seller
from core.queries import marketplace_category_url, marketplace_item_url

log = logging.getLogger(__name__)

ITEM_PATH_RE = re.compile(r"item/(\d+)")
LONG_DIGITS_RE = re.compile(r"(\d{10,})")
TITLE_RE = re.compile(r"<title>([^<]+)</title>")
BRAND_SUFFIX_RE = re.compile(r"\s*[|-]\s*Facebook.*$")
PRICE_RE = re.compile(r'"amount":"([\d.]+)"')
CURRENCY_RE = re.compile(r'"currency":"([A-Z]+)"')
DESCRIPTION_RE = re.compile(r'"redacted_description":\{"text":"([^"]+)"')
LOCATION_RE = re.compile(r'"marketplace_listing_location":\{"reverse_geocode":\{"city":"([^"]+)"')
CONDITION_RE = re.compile(r'"condition_text":"([^"]+)"')
SELLER_RE = re.compile(r'"marketplace_listing_seller":\{"name":"([^"]+)"')
CREATION_TIME_RE = re.compile(r'"creation_time":(\d+)')
IMAGE_RE = re.compile(r'"image":\{"uri":"([^"]+marketplace[^"]+)"')
ITEM_LINK_RE = re.compile(r"marketplace/item/(\d+)")
CATEGORY_LINK_RE = re.compile(r'marketplace/category/([^"?]+)"[^>]*>\s*(?:<[^>]+>)*([^<]+)')

UNAVAILABLE_MARKER = "This listing is no longer available"


def _first(pattern: re.Pattern, text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1) if match else None


def epoch_to_iso(seconds: float) -> str:
    """Epoch seconds to an ISO-8601 UTC string with milliseconds, e.g. 2024-01-01T00:00:00.000Z."""
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def listing_id_from_url(url: str) -> str:
    return _first(ITEM_PATH_RE, url) or _first(LONG_DIGITS_RE, url) or ""


def clean_title(raw: str | None) -> str:
    if raw is None:
        return ""
    return BRAND_SUFFIX_RE.sub("", raw).strip()


def parse_price(html: str) -> float:
    raw = _first(PRICE_RE, html)
    try:
        return float(raw) if raw else 0.0
    except ValueError:
        return 0.0


def extract_images(html: str) -> list[str]:
    images = []
    for match in IMAGE_RE.finditer(html):
        if len(images) >= MAX_LISTING_IMAGES:
            break
        images.append(match.group(1).replace("\\/", "/"))
    return images


def parse_posted_at(html: str) -> str:
    creation_time = _first(CREATION_TIME_RE, html)
    if not creation_time:
        return ""
    try:
        return epoch_to_iso(int(creation_time))
    except (ValueError, OverflowError, OSError) as e:
        log.debug(f"creation_time {creation_time} out of range: {e}")
        return ""


def parse_listing_html(html: str, url: str) -> Listing:
    listing = Listing(
        id=listing_id_from_url(url),
        title=clean_title(_first(TITLE_RE, html)),
        url=url,
        price=parse_price(html),
        currency=_first(CURRENCY_RE, html) or DEFAULT_CURRENCY,
        location=_first(LOCATION_RE, html) or "",
        seller=Seller(name=_first(SELLER_RE, html) or ""),
        condition=_first(CONDITION_RE, html),
        posted_at=parse_posted_at(html),
        images=extract_images(html),
        description=_first(DESCRIPTION_RE, html) or "",
        is_available=UNAVAILABLE_MARKER not in html,
    )
    if not listing.title:
        log.debug(f"No title found for listing {listing.id or url}")
    return listing


def iter_item_ids(html: str) -> Iterator[str]:
    for match in ITEM_LINK_RE.finditer(html):
        yield match.group(1)


def scan_categories(html: str) -> list[Category]:
    categories = []
    seen = set()
    for match in CATEGORY_LINK_RE.finditer(html):
        slug = match.group(1).rstrip("/")
        if slug in seen:
            continue
        seen.add(slug)
        categories.append(
            Category(id=slug, name=match.group(2).strip(), url=marketplace_category_url(slug))
        )
    return categories


def partial_listing(
    listing_id: str,
    title: str = "",
    price: float = 0.0,
    currency: str = DEFAULT_CURRENCY,
    location: str = "",
) -> Listing:
    """A listing as known from a search page; detail fields stay at their defaults."""
    return Listing(
        id=listing_id,
        title=title,
        url=marketplace_item_url(listing_id),
        price=price,
        currency=currency or DEFAULT_CURRENCY,
        location=location,
    )
