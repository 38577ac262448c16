"""
Preview Page Meta Tags

Builds the SEO and social-card tags of a link preview page so that chat
apps and crawlers unfurl a short link with the destination's title and
image, while search engines are told not to index the redirect page.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel

from myurl.core.models import LinkRecord, PreviewMetadata
from myurl.core.setting import settings
from myurl.services.metadata_enricher import truncate_text

DEFAULT_KEYWORDS = "url shortener, link shortener, redirect"
DEFAULT_IMAGE_PATH = "/og-default-image.jpg"
ROBOTS = "noindex, nofollow"


class PageMeta(BaseModel):
    title: str
    description: str
    image: str
    url: str
    keywords: str
    site_name: str
    robots: str = ROBOTS

    def tags(self) -> List[Tuple[str, str, str]]:
        """Return (attribute, name, content) triples for <meta> tags."""
        return [
            ("name", "description", self.description),
            ("name", "keywords", self.keywords),
            ("name", "robots", self.robots),
            ("property", "og:title", self.title),
            ("property", "og:description", self.description),
            ("property", "og:image", self.image),
            ("property", "og:url", self.url),
            ("property", "og:type", "website"),
            ("property", "og:site_name", self.site_name),
            ("name", "twitter:card", "summary_large_image"),
            ("name", "twitter:title", self.title),
            ("name", "twitter:description", self.description),
            ("name", "twitter:image", self.image),
        ]


def build_page_meta(
    short_code: str,
    link: Optional[LinkRecord],
    metadata: Optional[PreviewMetadata],
) -> PageMeta:
    """
    Build the meta tags for the preview page of a short link.

    Args:
        short_code: The short code being previewed
        link: The resolved link, if any
        metadata: Preview metadata for the destination, if any

    Returns:
        PageMeta with brand defaults filled in for missing values
    """
    site_url = settings.FRONTEND_URL.rstrip("/")
    brand = settings.SITE_NAME

    title = truncate_text(metadata.title) if metadata else ""
    description = truncate_text(metadata.description, max_length=200) if metadata else ""

    if not description:
        destination = f" {link.original_url}" if link else " the destination URL"
        description = f"You are being redirected to{destination} via {brand} URL shortener service."

    return PageMeta(
        title=f"{title} - {brand}" if title else f"Redirecting - {brand}",
        description=description,
        image=(metadata.image if metadata and metadata.image else f"{site_url}{DEFAULT_IMAGE_PATH}"),
        url=f"{site_url}/{short_code}",
        keywords=(metadata.keywords if metadata and metadata.keywords else DEFAULT_KEYWORDS),
        site_name=(metadata.site_name if metadata and metadata.site_name else brand),
    )
