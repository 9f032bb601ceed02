from dataclasses import asdict, dataclass, field
from typing import Any

DELETED_AUTHOR = "[deleted]"
DEFAULT_CURRENCY = "USD"
MAX_LISTING_IMAGES = 10


class _Record:
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Seller(_Record):
    name: str = ""
    joined: str | None = None
    rating: str | None = None
    profile_url: str | None = None


@dataclass(frozen=True)
class Listing(_Record):
    id: str
    title: str
    url: str
    price: float = 0.0
    currency: str = DEFAULT_CURRENCY
    location: str = ""
    seller: Seller = field(default_factory=Seller)
    condition: str | None = None
    posted_at: str = ""
    images: list[str] = field(default_factory=list)
    description: str = ""
    category: str | None = None
    is_available: bool = True


@dataclass(frozen=True)
class Category(_Record):
    id: str
    name: str
    url: str


@dataclass(frozen=True)
class Post(_Record):
    id: str
    title: str
    subreddit: str
    author: str = DELETED_AUTHOR
    score: int = 0
    num_comments: int = 0
    url: str = ""
    permalink: str = ""
    created_utc: float = 0
    body_preview: str = ""
    is_self: bool = False
    thumbnail: str | None = None
    link_flair_text: str | None = None
    upvote_ratio: float = 0
    awards: int = 0


@dataclass(frozen=True)
class Comment(_Record):
    id: str
    author: str = DELETED_AUTHOR
    body: str = ""
    score: int = 0
    created_utc: float = 0
    depth: int = 0
    is_op: bool = False
    awards: int = 0
    replies_count: int = 0


@dataclass(frozen=True)
class Thread(_Record):
    post: Post
    comments: list[Comment]
    total_comments: int


@dataclass(frozen=True)
class TrendingTopic(_Record):
    title: str
    subreddit: str
    rank: int
    score: int = 0
    num_comments: int = 0
    url: str = ""
    created_utc: float = 0


@dataclass(frozen=True)
class SearchResult(_Record):
    """Records collected by one search call; ``total_results`` is a local count."""

    results: list
    total_results: int


@dataclass(frozen=True)
class NewListingsResult(_Record):
    results: list[Listing]
    since: str
