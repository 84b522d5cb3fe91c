"""External data fetchers used as model tools."""

from tripgen.fetchers.opengraph import OpenGraphImageFetcher, random_fallback_image
from tripgen.fetchers.rate_limit import SlidingWindowRateLimiter
from tripgen.fetchers.ticketmaster import (
    TicketmasterClient,
    TicketmasterError,
    TicketmasterEvent,
    TicketmasterSearchParams,
    TicketmasterSegment,
)

__all__ = [
    "OpenGraphImageFetcher",
    "random_fallback_image",
    "SlidingWindowRateLimiter",
    "TicketmasterClient",
    "TicketmasterError",
    "TicketmasterEvent",
    "TicketmasterSearchParams",
    "TicketmasterSegment",
]
