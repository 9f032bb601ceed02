import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.embedded_state import extract_state, listings_from_state
from core.listing_fields import (
    clean_title,
    epoch_to_iso,
    extract_images,
    listing_id_from_url,
    parse_listing_html,
    scan_categories,
)
from core.normalize import parse_comment, parse_post, parse_trending, truncate, unwrap

RELAY_HTML = (
    '<script>{"marketplace_search_feed":{"feed_units":{"edges":['
    '{"node":{"listing":{"id":"111","marketplace_listing_title":"Bike",'
    '"listing_price":{"amount":"50.00","currency":"EUR"},'
    '"location":{"reverse_geocode":{"city":"Austin"}}}}},'
    '{"node":{"listing":{"id":"222","marketplace_listing_title":"Lamp"}}}'
    ']}},"extensions":{}}</script>'
)

FLAT_HTML = (
    '{"listing_id":"123","listing_title":"Chair","listing_price":{"amount":"25.00","currency":"USD"}},'
    '{"listing_id":"456","listing_title":"Desk","listing_price":{"amount":"80.5","currency":"GBP"}}'
)

LISTING_HTML = r"""<html><head><title>Mountain Bike - Facebook Marketplace</title></head><body>
<script>{"marketplace_listing_title":"Mountain Bike","listing_price":{"amount":"150.00","currency":"CAD"},
"redacted_description":{"text":"Barely used"},
"marketplace_listing_location":{"reverse_geocode":{"city":"Toronto"}},
"condition_text":"Used - Good","marketplace_listing_seller":{"name":"Bob"},
"creation_time":1700000000,
"image":{"uri":"https:\/\/scontent.xx.fbcdn.net\/marketplace\/img1.jpg"},
"image":{"uri":"https://scontent.xx.fbcdn.net/marketplace/img2.jpg"},
"image":{"uri":"https://scontent.xx.fbcdn.net/avatar.jpg"}}</script>
</body></html>"""


class TestEmbeddedState:
    def test_relay_state_is_preferred(self):
        state = extract_state(RELAY_HTML + FLAT_HTML)
        assert "feed_units" in state

        listings = listings_from_state(state)
        assert [item["id"] for item in listings] == ["111", "222"]
        assert listings[0]["price"] == 50.0
        assert listings[0]["currency"] == "EUR"
        assert listings[0]["location"] == "Austin"
        assert listings[1]["price"] == 0.0
        assert listings[1]["currency"] == "USD"

    def test_broken_relay_falls_through_to_hydration_script(self):
        html = (
            '{"marketplace_search":{not json},"extensions":{}}'
            '<script type="application/json" data-sjs>{"require":[["x", 1]]}</script>'
        )
        assert extract_state(html) == {"require": [["x", 1]]}

    def test_broken_hydration_falls_through_to_flat_tuples(self):
        html = "<script data-sjs>{oops}</script>" + FLAT_HTML
        state = extract_state(html)
        assert state == {
            "extracted_listings": [
                {"id": "123", "title": "Chair", "price": 25.0, "currency": "USD"},
                {"id": "456", "title": "Desk", "price": 80.5, "currency": "GBP"},
            ]
        }
        assert listings_from_state(state) == state["extracted_listings"]

    def test_no_state(self):
        assert extract_state("<html><body>nothing here</body></html>") is None
        assert extract_state("") is None
        assert listings_from_state(None) == []

    def test_malformed_flat_amount_defaults_to_zero(self):
        html = '{"listing_id":"789","listing_title":"Sofa","listing_price":{"amount":"1.2.3","currency":"USD"}}'
        state = extract_state(html)
        assert state == {
            "extracted_listings": [{"id": "789", "title": "Sofa", "price": 0.0, "currency": "USD"}]
        }


class TestListingFields:
    def test_full_listing_page(self):
        url = "https://www.facebook.com/marketplace/item/123456789/"
        listing = parse_listing_html(LISTING_HTML, url)

        assert listing.id == "123456789"
        assert listing.title == "Mountain Bike"
        assert listing.price == 150.0
        assert listing.currency == "CAD"
        assert listing.description == "Barely used"
        assert listing.location == "Toronto"
        assert listing.condition == "Used - Good"
        assert listing.seller.name == "Bob"
        assert listing.seller.joined is None
        assert listing.posted_at == "2023-11-14T22:13:20.000Z"
        assert listing.images == [
            "https://scontent.xx.fbcdn.net/marketplace/img1.jpg",
            "https://scontent.xx.fbcdn.net/marketplace/img2.jpg",
        ]
        assert listing.url == url
        assert listing.category is None
        assert listing.is_available is True

    def test_empty_page_takes_defaults(self):
        listing = parse_listing_html("", "https://www.facebook.com/marketplace/")
        assert listing.id == ""
        assert listing.title == ""
        assert listing.price == 0
        assert listing.currency == "USD"
        assert listing.location == ""
        assert listing.condition is None
        assert listing.seller.name == ""
        assert listing.posted_at == ""
        assert listing.images == []
        assert listing.description == ""
        assert listing.is_available is True

    def test_unavailable_marker(self):
        html = LISTING_HTML.replace("<body>", "<body><span>This listing is no longer available</span>")
        listing = parse_listing_html(html, "https://www.facebook.com/marketplace/item/1/")
        assert listing.is_available is False

    def test_listing_id_from_url(self):
        assert listing_id_from_url("https://www.facebook.com/marketplace/item/42/") == "42"
        assert listing_id_from_url("https://m.facebook.com/share/9876543210123") == "9876543210123"
        assert listing_id_from_url("https://m.facebook.com/share/12345") == ""

    def test_clean_title(self):
        assert clean_title("  Desk | Facebook Marketplace ") == "Desk"
        assert clean_title("Desk") == "Desk"
        assert clean_title(None) == ""

    def test_images_capped_at_ten(self):
        html = "".join(
            f'"image":{{"uri":"https://cdn.example.com/marketplace/{i}.jpg"}}' for i in range(15)
        )
        images = extract_images(html)
        assert len(images) == 10
        assert images[0].endswith("/0.jpg")
        assert images[-1].endswith("/9.jpg")

    def test_epoch_to_iso(self):
        assert epoch_to_iso(0) == "1970-01-01T00:00:00.000Z"
        assert epoch_to_iso(1700000000) == "2023-11-14T22:13:20.000Z"

    def test_out_of_range_creation_time_leaves_posted_at_empty(self):
        url = "https://www.facebook.com/marketplace/item/1234567890/"
        listing = parse_listing_html('<title>Guitar</title>"creation_time":1700000000000', url)
        assert listing.posted_at == ""
        assert listing.title == "Guitar"
        assert listing.id == "1234567890"

    def test_categories_deduplicated_by_slug(self):
        html = (
            '<a href="/marketplace/category/vehicles/"><span>Vehicles</span></a>'
            '<a href="/marketplace/category/vehicles"><span>Vehicles again</span></a>'
            '<a href="/marketplace/category/electronics" class="x"> Electronics </a>'
        )
        categories = scan_categories(html)
        assert [c.id for c in categories] == ["vehicles", "electronics"]
        assert categories[0].name == "Vehicles"
        assert categories[1].name == "Electronics"
        assert categories[0].url == "https://www.facebook.com/marketplace/category/vehicles"


class TestNormalize:
    def test_truncate(self):
        long_text = "a" * 600
        out = truncate(long_text, 500)
        assert len(out) == 503
        assert out.endswith("...")

        exact = "b" * 500
        assert truncate(exact, 500) == exact
        assert truncate("short", 500) == "short"
        assert truncate(None, 500) == ""

    def test_unwrap_accepts_both_shapes(self):
        data = {"id": "abc", "title": "Hello"}
        assert unwrap({"kind": "t3", "data": data}) is data
        assert unwrap(data) is data
        assert unwrap(None) == {}

    def test_parse_post_wrapped_and_unwrapped_match(self):
        data = {
            "id": "abc",
            "title": "Hello",
            "subreddit": "python",
            "author": "alice",
            "score": 10,
            "num_comments": 3,
            "url": "https://example.com",
            "permalink": "/r/python/comments/abc/hello/",
            "created_utc": 1700000000.0,
            "selftext": "x" * 700,
            "is_self": True,
            "thumbnail": "self",
            "link_flair_text": "Discussion",
            "upvote_ratio": 0.93,
            "total_awards_received": 2,
        }
        post = parse_post({"kind": "t3", "data": data})
        assert post == parse_post(data)
        assert post.subreddit == "r/python"
        assert post.permalink == "https://reddit.com/r/python/comments/abc/hello/"
        assert len(post.body_preview) == 503
        assert post.thumbnail is None
        assert post.awards == 2

    def test_parse_post_defaults(self):
        post = parse_post({"kind": "t3", "data": {"name": "t3_xyz"}})
        assert post.id == "t3_xyz"
        assert post.author == "[deleted]"
        assert post.subreddit == "r/"
        assert post.score == 0
        assert post.permalink == ""
        assert post.body_preview == ""
        assert post.thumbnail is None
        assert post.link_flair_text is None

    def test_thumbnail_sentinels(self):
        assert parse_post({"thumbnail": "default"}).thumbnail is None
        assert parse_post({"thumbnail": "self"}).thumbnail is None
        assert parse_post({"thumbnail": ""}).thumbnail is None
        assert parse_post({"thumbnail": "https://b.thumbs.redditmedia.com/x.jpg"}).thumbnail == (
            "https://b.thumbs.redditmedia.com/x.jpg"
        )

    def test_parse_comment(self):
        node = {
            "kind": "t1",
            "data": {
                "id": "c1",
                "author": "alice",
                "body": "y" * 1200,
                "score": 5,
                "depth": 2,
                "replies": {
                    "kind": "Listing",
                    "data": {
                        "children": [
                            {"kind": "t1", "data": {"id": "c2", "author": "bob"}},
                            {"kind": "t1", "data": {"id": "c3", "author": "carol"}},
                            {"kind": "more", "data": {"count": 12, "children": ["c4", "c5"]}},
                        ]
                    },
                },
            },
        }
        comment = parse_comment(node, thread_author="alice")
        assert comment.is_op is True
        assert comment.depth == 2
        assert comment.replies_count == 2
        assert len(comment.body) == 1003
        assert comment.body.endswith("...")

        other = parse_comment({"id": "c9", "body": "hi", "replies": ""}, thread_author="alice")
        assert other.author == "[deleted]"
        assert other.is_op is False
        assert other.replies_count == 0

    def test_parse_trending(self):
        topic = parse_trending(
            {"kind": "t3", "data": {"title": "Big news", "subreddit_name_prefixed": "r/news",
                                    "permalink": "/r/news/comments/1/", "score": 9000}},
            rank=3,
        )
        assert topic.rank == 3
        assert topic.subreddit == "r/news"
        assert topic.url == "https://reddit.com/r/news/comments/1/"
        assert topic.num_comments == 0
