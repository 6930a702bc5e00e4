"""Tests for blog queries over a fake CMS client."""

import pytest

from lawintake.services.blog import BlogService, reading_time, render_blocks


class FakeCMSClient:
    def __init__(self, responses=None, configured=True):
        self.responses = list(responses or [])
        self.is_configured = configured
        self.queries = []

    def query(self, groq, params=None):
        self.queries.append((groq, params))
        return self.responses.pop(0) if self.responses else None


POST = {
    "title": "איך מתחילים הליך גירושין",
    "slug": "start-divorce",
    "category": "גירושין",
    "excerpt": " ".join(["מילה"] * 450),
    "content": [
        {"_type": "block", "style": "h2", "children": [{"text": "פתיחה"}]},
        {"_type": "block", "style": "normal", "children": [{"text": "שורה "}, {"text": "ראשונה"}]},
        {"_type": "block", "listItem": "bullet", "children": [{"text": "פריט"}]},
        {"_type": "image", "asset": {}},
        {"_type": "block", "children": [{"text": "   "}]},
    ],
}


def test_reading_time():
    assert reading_time("") == "1 דקות קריאה"
    assert reading_time(" ".join(["x"] * 401)) == "3 דקות קריאה"


def test_render_blocks():
    assert render_blocks(POST["content"]) == [
        {"style": "h2", "text": "פתיחה"},
        {"style": "normal", "text": "שורה ראשונה"},
        {"style": "li", "text": "פריט"},
    ]


def test_unconfigured_cms_returns_empty():
    blog = BlogService(FakeCMSClient(configured=False))
    assert blog.list_posts() == []
    assert blog.latest_posts() == []
    assert blog.get_post("anything") is None
    assert blog.categories() == []
    assert blog.client.queries == []


def test_latest_posts_limit_and_preview_fields():
    client = FakeCMSClient([[POST]])
    posts = BlogService(client).latest_posts()
    assert "[0...3]" in client.queries[0][0]
    assert posts[0]["readingTime"] == "3 דקות קריאה"
    assert posts[0]["categorySlug"] == "divorce"


def test_get_post_renders_paragraphs():
    post = BlogService(FakeCMSClient([dict(POST)])).get_post("start-divorce")
    assert post["paragraphs"][0] == {"style": "h2", "text": "פתיחה"}


def test_missing_post():
    assert BlogService(FakeCMSClient([None])).get_post("nope") is None


@pytest.mark.parametrize("category", ["alimony", "מזונות"])
def test_posts_by_category_accepts_slug_or_name(category):
    client = FakeCMSClient([[]])
    BlogService(client).posts_by_category(category)
    assert client.queries[0][1] == {"category": "מזונות"}


def test_related_posts_excludes_current():
    client = FakeCMSClient([[]])
    BlogService(client).related_posts("start-divorce", "גירושין")
    assert client.queries[0][1] == {"category": "גירושין", "currentSlug": "start-divorce", "limit": 3}


def test_categories_counted_and_sorted():
    rows = [{"category": "גירושין"}, {"category": "מזונות"}, {"category": "גירושין"}, {}]
    assert BlogService(FakeCMSClient([rows])).categories() == [
        {"category": "גירושין", "slug": "divorce", "count": 2},
        {"category": "מזונות", "slug": "alimony", "count": 1},
    ]
