"""
Metadata Enricher

Fetches best-effort preview metadata (title, description, image, site name)
for a destination URL through ``POST /metadata``.

Preview quality is a UX enhancement only: ``enrich`` never raises. Any
failure is logged and replaced by a record synthesised from the URL's
domain, so a preview is always available.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from myurl.core.exceptions import MyUrlError
from myurl.core.models import PreviewMetadata
from myurl.core.setting import settings
from myurl.core.validators import is_valid_url
from myurl.services.backend_client import BackendClient

logger = logging.getLogger(__name__)

# Placeholders the metadata backend uses for missing fields
PLACEHOLDER_TEXTS = frozenset({"No title available", "No description available"})


def extract_domain(url: str) -> str:
    """
    Extract the display domain of a URL.

    Example:
        extract_domain("https://www.example.com/a") -> "example.com"
        extract_domain("not a url") -> "not a url"
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return url
    return hostname[4:] if hostname.startswith("www.") else hostname


def fallback_metadata(url: str) -> PreviewMetadata:
    """Build the preview used when no real metadata is available."""
    domain = extract_domain(url)
    return PreviewMetadata(
        title=domain,
        description=f"Redirecting to {domain}",
        site_name=domain,
        url=url,
    )


def is_rich_metadata(metadata: PreviewMetadata) -> bool:
    """True when metadata has a real title and description."""
    return bool(
        metadata.title
        and metadata.title not in PLACEHOLDER_TEXTS
        and metadata.description
        and metadata.description not in PLACEHOLDER_TEXTS
    )


def truncate_text(text: Optional[str], max_length: int = 120) -> str:
    """Truncate text for display; backend placeholders become empty."""
    if not text or text in PLACEHOLDER_TEXTS:
        return ""
    return text[:max_length] + "..." if len(text) > max_length else text


class MetadataEnricher:
    """
    Preview metadata lookup that always produces a PreviewMetadata.
    """

    def __init__(self, client: BackendClient, timeout: float = settings.METADATA_TIMEOUT_SECONDS):
        """
        Args:
            client: Backend API client
            timeout: Upper bound in seconds for the metadata call
        """
        self.client = client
        self.timeout = timeout

    async def enrich(self, original_url: str) -> PreviewMetadata:
        """
        Fetch metadata for a destination URL.

        Args:
            original_url: URL already validated by the resolver

        Returns:
            Backend metadata, or the domain-derived fallback on any failure
        """
        if not is_valid_url(original_url):
            logger.warning(f"Skipping metadata lookup for invalid URL: {original_url!r}")
            return fallback_metadata(original_url)

        try:
            response = await self.client.post(
                "/metadata",
                {"url": original_url},
                timeout=self.timeout,
            )
            if not response.success:
                raise MyUrlError(response.message or "metadata request failed")

            payload = response.data
            if isinstance(payload, dict) and payload.get("success") is False:
                raise MyUrlError(payload.get("message") or "Failed to fetch metadata")
            if isinstance(payload, dict) and isinstance(payload.get("metadata"), dict):
                payload = payload["metadata"]

            metadata = PreviewMetadata.model_validate(payload)
        except (MyUrlError, ValidationError) as e:
            logger.warning(f"Metadata lookup failed for {original_url}: {e}")
            return fallback_metadata(original_url)

        if metadata.url is None:
            metadata = metadata.model_copy(update={"url": original_url})

        logger.debug(f"Metadata received for {original_url}: rich={is_rich_metadata(metadata)}")
        return metadata
