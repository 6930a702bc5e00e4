"""Blog content from the CMS, for the public pages and the home-page teaser."""

import logging
import math
from typing import Any, Dict, List, Optional

from lawintake.storage.cms_client import CMSClient

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
LATEST_POSTS_LIMIT = 3

BLOG_CATEGORIES: List[str] = [
    "כללי",
    "ירושה",
    "גירושין",
    "משמורת",
    "ידועים בציבור",
    "אפוטרופסות",
    "אבהות-אימוץ",
    "הסכמים",
    "מזונות",
    "צו הרחקה",
]

CATEGORY_SLUGS: Dict[str, str] = {
    "כללי": "general",
    "ירושה": "inheritance",
    "גירושין": "divorce",
    "משמורת": "custody",
    "ידועים בציבור": "common-law",
    "אפוטרופסות": "guardianship",
    "אבהות-אימוץ": "paternity-adoption",
    "הסכמים": "agreements",
    "מזונות": "alimony",
    "צו הרחקה": "restraining-orders",
}

SLUG_TO_CATEGORY: Dict[str, str] = {slug: category for category, slug in CATEGORY_SLUGS.items()}

PREVIEW_PROJECTION = """{
    title,
    "slug": slug.current,
    date,
    category,
    excerpt,
    "featuredImage": featuredImage.asset->url + "?w=800&h=450&fit=crop&auto=format",
    author
}"""

POST_PROJECTION = """{
    title,
    "slug": slug.current,
    date,
    category,
    tags,
    excerpt,
    "featuredImage": featuredImage.asset->url + "?w=1200&h=630&fit=crop&auto=format",
    author,
    oldWordPressUrl,
    content
}"""


def reading_time(text: Optional[str]) -> str:
    words = len((text or "").split())
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return f"{minutes} דקות קריאה"


def block_text(block: Dict[str, Any]) -> str:
    return "".join(child.get("text", "") for child in block.get("children") or [])


def render_blocks(blocks: Optional[List[Dict[str, Any]]]) -> List[Dict[str, str]]:
    """Flatten portable-text blocks into `{style, text}` paragraphs for the templates."""
    paragraphs = []
    for block in blocks or []:
        if block.get("_type") != "block":
            continue
        text = block_text(block)
        if text.strip():
            style = "li" if block.get("listItem") else block.get("style", "normal")
            paragraphs.append({"style": style, "text": text})
    return paragraphs


class BlogService:
    """
    Read-only access to `blogPost` documents.

    Every query returns an empty result when the CMS is not configured, so
    the site renders without a content backend.
    """

    def __init__(self, client: CMSClient):
        self.client = client

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    @staticmethod
    def _preview(post: Dict[str, Any]) -> Dict[str, Any]:
        post = dict(post)
        post["readingTime"] = reading_time(post.get("excerpt"))
        post["categorySlug"] = CATEGORY_SLUGS.get(post.get("category"), "general")
        return post

    def _fetch_previews(self, groq: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if not self.is_configured:
            return []
        posts = self.client.query(groq, params) or []
        return [self._preview(post) for post in posts]

    def list_posts(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        window = f" [0...{int(limit)}]" if limit else ""
        return self._fetch_previews(f'*[_type == "blogPost"] | order(date desc){window} {PREVIEW_PROJECTION}')

    def latest_posts(self, limit: int = LATEST_POSTS_LIMIT) -> List[Dict[str, Any]]:
        return self.list_posts(limit)

    def get_post(self, slug: str) -> Optional[Dict[str, Any]]:
        if not self.is_configured:
            return None
        post = self.client.query(
            f'*[_type == "blogPost" && slug.current == $slug][0] {POST_PROJECTION}', {"slug": slug}
        )
        if not post:
            logger.info(f"Blog post not found: {slug}")
            return None
        post = self._preview(post)
        post["content"] = post.get("content") or []
        post["paragraphs"] = render_blocks(post["content"])
        return post

    def posts_by_category(self, category: str) -> List[Dict[str, Any]]:
        """Posts in a category; accepts the Hebrew name or its URL slug."""
        category = SLUG_TO_CATEGORY.get(category, category)
        return self._fetch_previews(
            f'*[_type == "blogPost" && category == $category] | order(date desc) {PREVIEW_PROJECTION}',
            {"category": category},
        )

    def related_posts(self, current_slug: str, category: str, limit: int = 3) -> List[Dict[str, Any]]:
        return self._fetch_previews(
            f'*[_type == "blogPost" && category == $category && slug.current != $currentSlug]'
            f" | order(date desc) [0...$limit] {PREVIEW_PROJECTION}",
            {"category": category, "currentSlug": current_slug, "limit": limit},
        )

    def categories(self) -> List[Dict[str, Any]]:
        """Categories in use with post counts, most populated first."""
        if not self.is_configured:
            return []
        rows = self.client.query('*[_type == "blogPost" && defined(category)]{ category }') or []
        counts: Dict[str, int] = {}
        for row in rows:
            category = (row or {}).get("category")
            if category:
                counts[category] = counts.get(category, 0) + 1
        return sorted(
            (
                {"category": category, "slug": CATEGORY_SLUGS.get(category, "general"), "count": count}
                for category, count in counts.items()
            ),
            key=lambda item: item["count"],
            reverse=True,
        )
