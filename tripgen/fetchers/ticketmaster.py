"""
Ticketmaster Discovery API client.

Searches events by segment/genre (e.g. Music > Jazz), by entity (artist,
team, venue) and by location and date range. A search runs in three steps:

1. Resolve segment and genre names to ids using the cached classifications
2. Resolve entity names to attraction ids (first result wins)
3. Search events with the resolved ids

Failures are returned as a TicketmasterError value rather than raised so
the result can be handed back to the model as tool output.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from tripgen.fetchers.rate_limit import SlidingWindowRateLimiter
from tripgen.shared.logging.timing import format_duration


logger = logging.getLogger(__name__)

TICKETMASTER_BASE_URL = "https://app.ticketmaster.com/discovery/v2"

CLASSIFICATIONS_CACHE_SECONDS = 7 * 24 * 60 * 60

# Segments relevant to trip planning; the rest are dropped to keep tool output small
ALLOWED_SEGMENT_IDS = {
    "KZFzniwnSyZfZ7v7nJ",  # Music
    "KZFzniwnSyZfZ7v7na",  # Arts & Theatre
    "KZFzniwnSyZfZ7v7nE",  # Sports
}

StrOrList = Optional[Union[str, List[str]]]


# ============================================================================
# Models
# ============================================================================


class TicketmasterSearchParams(BaseModel):
    """Search filters. Single values and lists are both accepted."""

    model_config = ConfigDict(populate_by_name=True)

    country_code: Optional[str] = Field(default=None, alias="countryCode")
    city: StrOrList = None
    segment_name: StrOrList = Field(default=None, alias="segmentName")
    genre_name: StrOrList = Field(default=None, alias="genreName")
    entity_name: StrOrList = Field(default=None, alias="entityName")
    start_date_time: Optional[str] = Field(default=None, alias="startDateTime")
    end_date_time: Optional[str] = Field(default=None, alias="endDateTime")


class TicketmasterEvent(BaseModel):
    """Normalized event; any field the API omitted is None."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    date_time: Optional[str] = Field(default=None, alias="dateTime")
    venue_name: Optional[str] = Field(default=None, alias="venueName")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class TicketmasterError(BaseModel):
    error: str
    details: Optional[str] = None


class TicketmasterSegment(BaseModel):
    name: str
    genres: List[str]


# ============================================================================
# Helpers
# ============================================================================


def _as_list(value: StrOrList) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [item for item in value if item]


def select_best_image(images: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """
    Pick the best event image.

    Prefers the first 16_9 or 3_2 image at least 1000px wide, otherwise the
    image with the most pixels.
    """
    valid = [img for img in images or [] if isinstance(img, dict) and (img.get("url") or "").strip()]
    if not valid:
        return None

    for img in valid:
        if img.get("ratio") in ("16_9", "3_2") and (img.get("width") or 0) >= 1000:
            return img["url"]

    best = valid[0]
    max_pixels = (best.get("width") or 0) * (best.get("height") or 0)
    for img in valid:
        pixels = (img.get("width") or 0) * (img.get("height") or 0)
        if pixels > max_pixels:
            max_pixels = pixels
            best = img
    return best["url"]


def normalize_event(event: Dict[str, Any]) -> TicketmasterEvent:
    """Reduce a raw event to the fields the model needs."""
    start = ((event.get("dates") or {}).get("start")) or {}
    venues = ((event.get("_embedded") or {}).get("venues")) or []
    venue_name = venues[0].get("name") if venues and isinstance(venues[0], dict) else None
    return TicketmasterEvent(
        id=event.get("id"),
        name=event.get("name"),
        url=event.get("url"),
        date_time=start.get("dateTime"),
        venue_name=venue_name,
        image_url=select_best_image(event.get("images")),
    )


# ============================================================================
# Client
# ============================================================================


class TicketmasterClient:
    """
    Rate-limited Ticketmaster Discovery API client.

    Args:
        api_key: Discovery API key
        client: HTTP client used for every request
        rate_limiter: Limiter awaited before each request (defaults to 5 calls/s)
        clock: Wall clock used for the classifications cache
    """

    def __init__(
        self,
        api_key: Optional[str],
        client: httpx.AsyncClient,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.api_key = api_key
        self._client = client
        self._rate_limiter = rate_limiter or SlidingWindowRateLimiter(max_calls=5, window_seconds=1.0)
        self._clock = clock
        self._classifications: Optional[Dict[str, Any]] = None
        self._classifications_expire_at = 0.0

    async def _get(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        query = {"apikey": self.api_key}
        for key, value in params.items():
            if isinstance(value, list):
                if value:
                    query[key] = value
            elif value not in (None, ""):
                query[key] = value
        await self._rate_limiter.acquire()
        filters = sorted(key for key in query if key != "apikey")
        logger.debug(f"[ticketmaster] GET {path} filters={filters}")
        return await self._client.get(f"{TICKETMASTER_BASE_URL}/{path.lstrip('/')}", params=query)

    # ------------------------------------------------------------------
    # Classifications
    # ------------------------------------------------------------------

    async def _load_classifications(self) -> List[Dict[str, Any]]:
        """
        Return the raw classification list, refreshing the cache when stale.

        Raises:
            RuntimeError: If the API key is missing or the API rejects the request
            httpx.HTTPError: On transport failures
        """
        now = self._clock()
        if self._classifications is not None and now < self._classifications_expire_at:
            logger.debug("[ticketmaster] Classifications cache hit")
            return self._classifications.get("_embedded", {}).get("classifications", [])

        if not self.api_key:
            raise RuntimeError("Ticketmaster API key is not configured")

        logger.info("[ticketmaster] Fetching fresh classifications from API")
        response = await self._get("classifications.json", {"size": "500", "locale": "*"})
        if response.status_code >= 400:
            raise RuntimeError(
                f"Failed to fetch classifications: {response.status_code} {response.reason_phrase}"
            )
        self._classifications = response.json()
        self._classifications_expire_at = now + CLASSIFICATIONS_CACHE_SECONDS
        return self._classifications.get("_embedded", {}).get("classifications", [])

    async def get_classifications(self) -> Union[List[TicketmasterSegment], TicketmasterError]:
        """
        List the Music, Arts & Theatre and Sports segments with their genre names.

        Segments appearing more than once are merged; names are sorted.
        """
        try:
            classifications = await self._load_classifications()
        except (RuntimeError, httpx.HTTPError, ValueError) as e:
            logger.error(f"[ticketmaster] Error getting classifications: {e}")
            return TicketmasterError(error="Failed to get Ticketmaster classifications", details=str(e))

        segment_map: Dict[str, set] = {}
        for classification in classifications:
            segment = classification.get("segment") or {}
            segment_id, segment_name = segment.get("id"), segment.get("name")
            if not segment_id or not segment_name or segment_id not in ALLOWED_SEGMENT_IDS:
                continue
            genres = segment_map.setdefault(segment_name, set())
            for genre in (segment.get("_embedded") or {}).get("genres") or []:
                if genre.get("name"):
                    genres.add(genre["name"])

        segments = [
            TicketmasterSegment(name=name, genres=sorted(genres))
            for name, genres in segment_map.items()
        ]
        segments.sort(key=lambda s: s.name)
        logger.info(
            f"[ticketmaster] Found {len(segments)} segments with "
            f"{sum(len(s.genres) for s in segments)} total genres"
        )
        return segments

    async def _resolve_classifications(
        self, segment_names: List[str], genre_names: List[str]
    ) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {"segment_ids": [], "genre_ids": []}
        try:
            classifications = await self._load_classifications()
        except (RuntimeError, httpx.HTTPError, ValueError) as e:
            logger.error(f"[ticketmaster] Error resolving classifications: {e}")
            return result

        for name in segment_names:
            for classification in classifications:
                segment = classification.get("segment") or {}
                if (segment.get("name") or "").lower() == name.lower():
                    result["segment_ids"].append(segment["id"])
                    break

        for name in genre_names:
            found = False
            for classification in classifications:
                segment = classification.get("segment") or {}
                # Genres are only searched inside the requested segments, if any
                if result["segment_ids"] and segment.get("id") not in result["segment_ids"]:
                    continue
                for genre in (segment.get("_embedded") or {}).get("genres") or []:
                    if (genre.get("name") or "").lower() == name.lower():
                        result["genre_ids"].append(genre["id"])
                        found = True
                        break
                if found:
                    break

        logger.info(
            f"[ticketmaster] Resolved classifications: "
            f"segmentIds={result['segment_ids'] or 'none'}, genreIds={result['genre_ids'] or 'none'}"
        )
        return result

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    async def _resolve_entities(self, entity_names: List[str]) -> List[str]:
        attraction_ids: List[str] = []
        for name in entity_names:
            short_name = name if len(name) <= 40 else name[:37] + "..."
            try:
                response = await self._get(
                    "attractions.json", {"keyword": name, "size": "10", "locale": "*"}
                )
            except httpx.HTTPError as e:
                logger.error(f"[ticketmaster] Attractions lookup failed for '{short_name}': {e}")
                continue
            if response.status_code >= 400:
                logger.error(
                    f"[ticketmaster] Attractions API error for '{short_name}': "
                    f"{response.status_code} {response.reason_phrase}"
                )
                continue
            attractions = (response.json().get("_embedded") or {}).get("attractions") or []
            if not attractions:
                logger.warning(f"[ticketmaster] No attractions found for '{short_name}'")
                continue
            best = attractions[0]
            logger.info(f"[ticketmaster] Found attraction: '{best.get('name')}' (ID: {best.get('id')})")
            attraction_ids.append(best["id"])

        logger.info(f"[ticketmaster] Resolved {len(attraction_ids)} of {len(entity_names)} entities")
        return attraction_ids

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_events(
        self, params: Union[TicketmasterSearchParams, Dict[str, Any]]
    ) -> Union[List[TicketmasterEvent], TicketmasterError]:
        """
        Search events matching the given filters.

        Args:
            params: Search filters; country_code is required

        Returns:
            Normalized events, or a TicketmasterError describing the failure
        """
        if isinstance(params, dict):
            params = TicketmasterSearchParams.model_validate(params)
        started_at = time.perf_counter()

        if not self.api_key:
            logger.error("[ticketmaster] API key is missing")
            return TicketmasterError(error="Invalid Ticketmaster API key", details="API key not configured")
        if not params.country_code:
            logger.error("[ticketmaster] Missing required parameter: country_code")
            return TicketmasterError(error="Missing required parameter: country_code")

        segment_names = _as_list(params.segment_name)
        genre_names = _as_list(params.genre_name)
        entity_names = _as_list(params.entity_name)

        segment_ids: List[str] = []
        genre_ids: List[str] = []
        attraction_ids: List[str] = []

        if segment_names or genre_names:
            resolved = await self._resolve_classifications(segment_names, genre_names)
            segment_ids, genre_ids = resolved["segment_ids"], resolved["genre_ids"]
            if len(segment_ids) < len(segment_names):
                return TicketmasterError(
                    error="Unknown segment",
                    details=(
                        f"Some segments not found in Ticketmaster classifications. "
                        f"Requested {len(segment_names)}, found {len(segment_ids)}."
                    ),
                )
            if len(genre_ids) < len(genre_names):
                return TicketmasterError(
                    error="Unknown genre",
                    details=(
                        f"Some genres not found in Ticketmaster classifications. "
                        f"Requested {len(genre_names)}, found {len(genre_ids)}."
                    ),
                )

        if entity_names:
            attraction_ids = await self._resolve_entities(entity_names)
            if not attraction_ids:
                return TicketmasterError(
                    error="Unknown entity", details="No entities found in Ticketmaster attractions"
                )

        try:
            response = await self._get(
                "events.json",
                {
                    "countryCode": params.country_code,
                    "city": _as_list(params.city),
                    "segmentId": segment_ids,
                    "genreId": genre_ids,
                    "attractionId": attraction_ids,
                    "startDateTime": params.start_date_time,
                    "endDateTime": params.end_date_time,
                    "size": "200",
                    "locale": "*",
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"[ticketmaster] Error searching events: {e}")
            return TicketmasterError(error="Ticketmaster API unreachable", details=str(e))

        duration_ms = (time.perf_counter() - started_at) * 1000
        if response.status_code == 401:
            logger.error(f"[ticketmaster] Invalid API key ({format_duration(duration_ms)})")
            return TicketmasterError(error="Invalid Ticketmaster API key")
        if response.status_code >= 400:
            logger.error(
                f"[ticketmaster] Events API error: {response.status_code} "
                f"{response.reason_phrase} ({format_duration(duration_ms)})"
            )
            return TicketmasterError(
                error="Ticketmaster API unreachable", details=f"HTTP {response.status_code}"
            )

        try:
            raw_events = (response.json().get("_embedded") or {}).get("events") or []
        except ValueError as e:
            return TicketmasterError(error="Ticketmaster API unreachable", details=str(e))

        events = [normalize_event(event) for event in raw_events if isinstance(event, dict)]
        logger.info(f"[ticketmaster] Found {len(events)} event(s) ({format_duration(duration_ms)})")
        return events
