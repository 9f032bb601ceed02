import logging
from datetime import datetime, timedelta, timezone

from core.embedded_state import extract_state, listings_from_state
from core.listing_fields import (
    epoch_to_iso,
    iter_item_ids,
    parse_listing_html,
    partial_listing,
    scan_categories,
)
from core.models import Category, Listing, NewListingsResult, SearchResult
from core import queries
from core.transport import Transport, default_transport, fetch_checked

log = logging.getLogger(__name__)

PLATFORM = "marketplace"


class MarketplaceScraper:
    def __init__(self, transport: Transport | None = None):
        self.transport = transport or default_transport

    async def _fetch_html(self, request: queries.RequestSpec, operation: str, **context) -> str:
        response = await fetch_checked(
            self.transport, request.url, request.headers, PLATFORM, operation, **context
        )
        return response.text()

    def _collect(self, html: str, limit: int, location: str = "") -> list[Listing]:
        results: list[Listing] = []
        seen: set[str] = set()
        if limit <= 0:
            return results

        entries = listings_from_state(extract_state(html))
        if entries:
            for entry in entries:
                listing_id = str(entry.get("id") or "")
                if not listing_id or listing_id in seen:
                    continue
                seen.add(listing_id)
                results.append(
                    partial_listing(
                        listing_id,
                        title=entry.get("title") or "",
                        price=entry.get("price") or 0.0,
                        currency=entry.get("currency") or "",
                        location=location or entry.get("location") or "",
                    )
                )
                if len(results) >= limit:
                    break
            return results

        log.debug("No embedded listings, falling back to item link scan")
        for listing_id in iter_item_ids(html):
            if listing_id in seen:
                continue
            seen.add(listing_id)
            results.append(partial_listing(listing_id, location=location))
            if len(results) >= limit:
                break
        return results

    async def search(
        self,
        query: str,
        location: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        radius: str | None = None,
        limit: int = 20,
    ) -> SearchResult:
        request = queries.marketplace_search(query, min_price, max_price, radius)
        html = await self._fetch_html(request, "search", query=query)
        results = self._collect(html, limit, location or "")
        log.info(f"Marketplace search '{query}': {len(results)} listings")
        return SearchResult(results=results, total_results=len(results))

    async def get_new_listings(self, query: str, since_hours: float = 1, limit: int = 20) -> NewListingsResult:
        request = queries.marketplace_recent(query, since_hours)
        html = await self._fetch_html(request, "new_listings", query=query)
        since = datetime.now(timezone.utc) - timedelta(hours=since_hours)
        results = self._collect(html, limit)
        log.info(f"Marketplace new listings '{query}' (last {since_hours}h): {len(results)} listings")
        return NewListingsResult(results=results, since=epoch_to_iso(since.timestamp()))

    async def get_listing_details(self, listing_id: str) -> Listing:
        request = queries.marketplace_item(listing_id)
        html = await self._fetch_html(request, "listing", id=listing_id)
        return parse_listing_html(html, request.url)

    async def get_categories(self, location: str | None = None) -> list[Category]:
        request = queries.marketplace_categories(location)
        html = await self._fetch_html(request, "categories", location=location)
        categories = scan_categories(html)
        log.info(f"Found {len(categories)} marketplace categories")
        return categories


marketplace = MarketplaceScraper()


async def search(query: str, **kwargs) -> SearchResult:
    return await marketplace.search(query, **kwargs)


async def get_listing_details(listing_id: str) -> Listing:
    return await marketplace.get_listing_details(listing_id)


async def get_categories(location: str | None = None) -> list[Category]:
    return await marketplace.get_categories(location)


async def get_new_listings(query: str, since_hours: float = 1, limit: int = 20) -> NewListingsResult:
    return await marketplace.get_new_listings(query, since_hours, limit)
