"""Request builders for both platforms.

Every builder is a pure function: parameters in, ``RequestSpec`` out. The
header identities below are part of each platform's contract; the response
format we parse depends on looking like a mobile browser.
"""

import math
import re
from dataclasses import dataclass, field
from urllib.parse import quote, urlencode

MARKETPLACE_BASE = "https://www.facebook.com/marketplace"
REDDIT_BASE = "https://www.reddit.com"
REDDIT_PERMALINK_BASE = "https://reddit.com"

MARKETPLACE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4_1 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.4.1 Mobile/15E148 Safari/604.1"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Cache-Control": "no-cache",
}

REDDIT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1"
    ),
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}

REDDIT_LIMIT_CEILING = 100
THREAD_COMMENT_LIMIT = 200
THREAD_DEPTH = 4

_RADIUS_UNIT = re.compile(r"\s*[A-Za-z]+\s*$")


@dataclass(frozen=True)
class RequestSpec:
    url: str
    headers: dict[str, str] = field(default_factory=dict)


def to_minor_units(amount: float) -> int:
    return round(amount * 100)


def strip_radius_unit(radius: str) -> str:
    return _RADIUS_UNIT.sub("", radius.strip())


def clamp_limit(limit: int) -> int:
    return min(limit, REDDIT_LIMIT_CEILING)


def days_since(hours: float) -> int:
    return max(1, math.ceil(hours / 24))


def _marketplace(url: str) -> RequestSpec:
    return RequestSpec(url=url, headers=dict(MARKETPLACE_HEADERS))


def _reddit(url: str) -> RequestSpec:
    return RequestSpec(url=url, headers=dict(REDDIT_HEADERS))


def marketplace_search(
    query: str,
    min_price: float | None = None,
    max_price: float | None = None,
    radius: str | None = None,
) -> RequestSpec:
    params = {"query": query}
    if min_price is not None:
        params["minPrice"] = str(to_minor_units(min_price))
    if max_price is not None:
        params["maxPrice"] = str(to_minor_units(max_price))
    if radius:
        params["radius"] = strip_radius_unit(radius)
    return _marketplace(f"{MARKETPLACE_BASE}/search/?{urlencode(params)}")


def marketplace_recent(query: str, since_hours: float) -> RequestSpec:
    params = {
        "query": query,
        "daysSinceListed": str(days_since(since_hours)),
        "sortBy": "creation_time_descend",
    }
    return _marketplace(f"{MARKETPLACE_BASE}/search/?{urlencode(params)}")


def marketplace_item_url(listing_id: str) -> str:
    return f"{MARKETPLACE_BASE}/item/{listing_id}"


def marketplace_item(listing_id: str) -> RequestSpec:
    return _marketplace(marketplace_item_url(listing_id))


def marketplace_category_url(slug: str) -> str:
    return f"{MARKETPLACE_BASE}/category/{slug}"


def marketplace_categories(location: str | None = None) -> RequestSpec:
    # location is resolved server-side from the session, not the URL
    return _marketplace(f"{MARKETPLACE_BASE}/categories/")


def reddit_search(
    query: str,
    scope: str = "all",
    sort: str = "relevance",
    time: str = "week",
    limit: int = 25,
) -> RequestSpec:
    restricted = scope != "all"
    prefix = f"/r/{quote(scope, safe='')}" if restricted else ""
    params = {
        "q": query,
        "sort": sort,
        "t": time,
        "limit": clamp_limit(limit),
        "restrict_sr": "on" if restricted else "off",
    }
    return _reddit(f"{REDDIT_BASE}{prefix}/search.json?{urlencode(params, quote_via=quote)}")


def reddit_trending(country: str = "US", limit: int = 25) -> RequestSpec:
    params = {"limit": clamp_limit(limit), "geo_filter": country}
    return _reddit(f"{REDDIT_BASE}/r/popular/hot.json?{urlencode(params, quote_via=quote)}")


def reddit_subreddit_top(subreddit: str, time: str = "day", limit: int = 25) -> RequestSpec:
    params = {"t": time, "limit": clamp_limit(limit)}
    return _reddit(
        f"{REDDIT_BASE}/r/{quote(subreddit, safe='')}/top.json?{urlencode(params, quote_via=quote)}"
    )


def clean_thread_id(thread_id: str) -> str:
    return thread_id[3:] if thread_id.startswith("t3_") else thread_id


def reddit_thread(thread_id: str, sort: str = "best") -> RequestSpec:
    params = {"sort": sort, "limit": THREAD_COMMENT_LIMIT, "depth": THREAD_DEPTH}
    return _reddit(
        f"{REDDIT_BASE}/comments/{quote(clean_thread_id(thread_id), safe='')}.json"
        f"?{urlencode(params, quote_via=quote)}"
    )
