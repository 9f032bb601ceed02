"""Projection of discussion-site JSON nodes into records.

Listing payloads wrap each entry as ``{"kind": ..., "data": {...}}`` but some
call sites already hold the inner ``data``. ``unwrap`` accepts both, so the
parsers below never need to know which one they were given.
"""

import logging
from typing import Any

from core.models import DELETED_AUTHOR, Comment, Post, TrendingTopic
from core.queries import REDDIT_PERMALINK_BASE

log = logging.getLogger(__name__)

POST_PREVIEW_CAP = 500
COMMENT_BODY_CAP = 1000
THUMBNAIL_SENTINELS = {"self", "default"}
CONTINUATION_KIND = "more"


def truncate(text: str | None, cap: int) -> str:
    if not text:
        return ""
    if len(text) <= cap:
        return text
    return text[:cap] + "..."


def unwrap(node: Any) -> dict:
    if not isinstance(node, dict):
        return {}
    if "kind" in node and isinstance(node.get("data"), dict):
        return node["data"]
    return node


def is_continuation(node: Any) -> bool:
    return isinstance(node, dict) and node.get("kind") == CONTINUATION_KIND


def loaded_children(node: Any) -> list:
    """Child nodes under ``replies``; empty when replies is ``""`` or missing."""
    replies = unwrap(node).get("replies")
    if not isinstance(replies, dict):
        return []
    children = unwrap(replies).get("children")
    return children if isinstance(children, list) else []


def _num(value: Any) -> int | float:
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


def _subreddit(d: dict) -> str:
    return d.get("subreddit_name_prefixed") or f"r/{d.get('subreddit') or ''}"


def _permalink(d: dict) -> str:
    permalink = d.get("permalink")
    return f"{REDDIT_PERMALINK_BASE}{permalink}" if permalink else ""


def _thumbnail(d: dict) -> str | None:
    thumbnail = d.get("thumbnail")
    if not thumbnail or thumbnail in THUMBNAIL_SENTINELS:
        return None
    return thumbnail


def parse_post(node: Any) -> Post:
    d = unwrap(node)
    return Post(
        id=d.get("id") or d.get("name") or "",
        title=d.get("title") or "",
        subreddit=_subreddit(d),
        author=d.get("author") or DELETED_AUTHOR,
        score=_num(d.get("score")),
        num_comments=_num(d.get("num_comments")),
        url=d.get("url") or "",
        permalink=_permalink(d),
        created_utc=_num(d.get("created_utc")),
        body_preview=truncate(d.get("selftext"), POST_PREVIEW_CAP),
        is_self=bool(d.get("is_self", False)),
        thumbnail=_thumbnail(d),
        link_flair_text=d.get("link_flair_text") or None,
        upvote_ratio=_num(d.get("upvote_ratio")),
        awards=_num(d.get("total_awards_received")),
    )


def parse_comment(node: Any, thread_author: str) -> Comment:
    d = unwrap(node)
    author = d.get("author") or DELETED_AUTHOR
    replies_count = sum(1 for child in loaded_children(d) if not is_continuation(child))
    return Comment(
        id=d.get("id") or d.get("name") or "",
        author=author,
        body=truncate(d.get("body"), COMMENT_BODY_CAP),
        score=_num(d.get("score")),
        created_utc=_num(d.get("created_utc")),
        depth=_num(d.get("depth")),
        is_op=d.get("author") is not None and d.get("author") == thread_author,
        awards=_num(d.get("total_awards_received")),
        replies_count=replies_count,
    )


def parse_trending(node: Any, rank: int) -> TrendingTopic:
    d = unwrap(node)
    return TrendingTopic(
        title=d.get("title") or "",
        subreddit=_subreddit(d),
        rank=rank,
        score=_num(d.get("score")),
        num_comments=_num(d.get("num_comments")),
        url=_permalink(d),
        created_utc=_num(d.get("created_utc")),
    )


def listing_children(payload: Any) -> list:
    """Entries of a ``Listing`` payload (``{"data": {"children": [...]}}``)."""
    children = unwrap(payload).get("children")
    if not isinstance(children, list):
        log.debug("Listing payload has no children")
        return []
    return children
