import json
import logging
from typing import Any

from core import queries
from core.comments import flatten_comments
from core.errors import ShapeError
from core.models import Post, SearchResult, Thread, TrendingTopic
from core.normalize import listing_children, parse_post, parse_trending
from core.transport import Transport, default_transport, fetch_checked

log = logging.getLogger(__name__)

PLATFORM = "reddit"


def unique_posts(children: list) -> list[Post]:
    posts = []
    seen = set()
    for child in children:
        post = parse_post(child)
        if post.id and post.id in seen:
            continue
        seen.add(post.id)
        posts.append(post)
    return posts


class RedditScraper:
    def __init__(self, transport: Transport | None = None):
        self.transport = transport or default_transport

    async def _fetch_json(self, request: queries.RequestSpec, operation: str, **context) -> Any:
        response = await fetch_checked(
            self.transport, request.url, request.headers, PLATFORM, operation, **context
        )
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.error(f"{operation} returned a non-JSON body ({context}): {e}")
            raise ShapeError(PLATFORM, operation, "response body is not JSON", context) from e

    async def _fetch_listing(self, request: queries.RequestSpec, operation: str, **context) -> list:
        payload = await self._fetch_json(request, operation, **context)
        if not isinstance(payload, dict):
            raise ShapeError(PLATFORM, operation, "expected a listing object", context)
        return listing_children(payload)

    async def search_posts(
        self,
        query: str,
        scope: str = "all",
        sort: str = "relevance",
        time: str = "week",
        limit: int = 25,
    ) -> SearchResult:
        request = queries.reddit_search(query, scope, sort, time, limit)
        children = await self._fetch_listing(request, "search", query=query, scope=scope)
        posts = unique_posts(children)[: max(limit, 0)]
        log.info(f"Reddit search '{query}' in {scope}: {len(posts)} posts")
        return SearchResult(results=posts, total_results=len(posts))

    async def get_trending(self, country: str = "US", limit: int = 25) -> list[TrendingTopic]:
        request = queries.reddit_trending(country, limit)
        children = await self._fetch_listing(request, "trending", country=country)
        return [parse_trending(child, rank) for rank, child in enumerate(children, start=1)]

    async def get_subreddit_top(self, subreddit: str, time: str = "day", limit: int = 25) -> list[Post]:
        request = queries.reddit_subreddit_top(subreddit, time, limit)
        children = await self._fetch_listing(request, "subreddit_top", subreddit=subreddit)
        return unique_posts(children)

    async def get_thread(self, thread_id: str, sort: str = "best") -> Thread:
        clean_id = queries.clean_thread_id(thread_id)
        request = queries.reddit_thread(clean_id, sort)
        payload = await self._fetch_json(request, "thread", id=clean_id)

        if not isinstance(payload, list) or len(payload) < 2:
            log.error(f"Invalid thread response for {clean_id}")
            raise ShapeError(PLATFORM, "thread", "expected [post listing, comment listing]", {"id": clean_id})

        post_children = listing_children(payload[0])
        post = parse_post(post_children[0] if post_children else {})
        comment_children = listing_children(payload[1])
        comments = flatten_comments(comment_children, post.author)

        log.info(f"Thread {clean_id}: {len(comments)} comments flattened of {post.num_comments}")
        return Thread(post=post, comments=comments, total_comments=post.num_comments)


reddit = RedditScraper()


async def search_posts(query: str, **kwargs) -> SearchResult:
    return await reddit.search_posts(query, **kwargs)


async def get_trending(country: str = "US", limit: int = 25) -> list[TrendingTopic]:
    return await reddit.get_trending(country, limit)


async def get_subreddit_top(subreddit: str, time: str = "day", limit: int = 25) -> list[Post]:
    return await reddit.get_subreddit_top(subreddit, time, limit)


async def get_thread(thread_id: str, sort: str = "best") -> Thread:
    return await reddit.get_thread(thread_id, sort)
