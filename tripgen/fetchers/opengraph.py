"""
OpenGraph image lookup for event pages.

Resolves an event website to the JPG/PNG images it advertises through its
OpenGraph metadata. Every failure degrades to a single fallback asset so
callers always get a non-empty list.
"""

import logging
import random
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx


logger = logging.getLogger(__name__)

OPENGRAPH_BASE_URL = "https://opengraph.io/api/1.1/site"

# Bundled fallback assets are /fallback-images/1.png .. 10.png
FALLBACK_IMAGE_COUNT = 10

VALID_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")


def random_fallback_image(rng: Optional[random.Random] = None) -> str:
    """Pick one of the bundled fallback images."""
    number = (rng or random).randint(1, FALLBACK_IMAGE_COUNT)
    return f"/fallback-images/{number}.png"


def is_valid_image_format(image_url: str) -> bool:
    """Only JPG and PNG images are usable as cover art (no SVG, GIF, WebP)."""
    return image_url.lower().endswith(VALID_IMAGE_EXTENSIONS)


def extract_image_urls(data: Dict[str, Any]) -> List[str]:
    """
    Collect usable image URLs from an OpenGraph API payload.

    openGraph.image and openGraph.images are read first. htmlInferred.images
    is consulted only when openGraph carried no images at all (valid or not).
    The result keeps first-seen order and holds no duplicates.
    """
    urls: List[str] = []
    has_open_graph_images = False

    open_graph = data.get("openGraph") or {}
    if not isinstance(open_graph, dict):
        open_graph = {}

    image = open_graph.get("image")
    if isinstance(image, dict) and image.get("url"):
        has_open_graph_images = True
        if is_valid_image_format(image["url"]):
            urls.append(image["url"])

    images = open_graph.get("images")
    if isinstance(images, list):
        for img in images:
            if isinstance(img, dict) and img.get("url"):
                has_open_graph_images = True
                if is_valid_image_format(img["url"]):
                    urls.append(img["url"])
            elif isinstance(img, str):
                has_open_graph_images = True
                if is_valid_image_format(img):
                    urls.append(img)

    html_inferred = data.get("htmlInferred") or {}
    inferred_images = html_inferred.get("images") if isinstance(html_inferred, dict) else None
    if not has_open_graph_images and isinstance(inferred_images, list):
        for img in inferred_images:
            if isinstance(img, str) and is_valid_image_format(img):
                urls.append(img)

    return list(dict.fromkeys(urls))


class OpenGraphImageFetcher:
    """
    Fetch event images through the opengraph.io site endpoint.

    Args:
        api_key: opengraph.io app id. When missing, every lookup returns a fallback.
        client: Optional shared HTTP client. A short-lived client is used otherwise.
        timeout_s: Request timeout for the short-lived client
        rng: Random source for fallback selection
    """

    def __init__(
        self,
        api_key: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 15.0,
        rng: Optional[random.Random] = None,
    ):
        self.api_key = api_key
        self._client = client
        self._timeout_s = timeout_s
        self._rng = rng

    def _fallback(self, url: str, reason: str) -> List[str]:
        image = random_fallback_image(self._rng)
        logger.info(f"[opengraph] {reason} for {url}, using fallback: {image}")
        return [image]

    async def _get(self, api_url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(api_url)
        async with httpx.AsyncClient(timeout=self._timeout_s) as client:
            return await client.get(api_url)

    async def fetch_images(self, url: str) -> List[str]:
        """
        Return the usable image URLs for an event page.

        Never raises; any failure yields a one-element fallback list.
        """
        if not self.api_key:
            logger.error("[opengraph] API key is missing")
            return self._fallback(url, "API key missing")

        api_url = f"{OPENGRAPH_BASE_URL}/{quote(url, safe='')}?app_id={self.api_key}"
        logger.info(f"[opengraph] Fetching images from: {url}")

        try:
            response = await self._get(api_url)
        except httpx.HTTPError as e:
            logger.error(f"[opengraph] Request failed for {url}: {e}")
            return self._fallback(url, "Request failed")

        if response.status_code >= 400:
            logger.error(
                f"[opengraph] API error for {url}: {response.status_code} {response.reason_phrase}"
            )
            return self._fallback(url, "API error")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"[opengraph] Malformed response for {url}: {e}")
            return self._fallback(url, "Malformed response")

        if not isinstance(data, dict):
            return self._fallback(url, "Malformed response")

        images = extract_image_urls(data)
        logger.info(f"[opengraph] Found {len(images)} valid image(s) for {url}")
        if images:
            return images
        return self._fallback(url, "No images found")
