"""
Trip bundle output contract.

Defines the structured output the hosted prompt is expected to return:
a list of bundles, each a cluster of events in one city and date range.
The orchestrator treats bundles as opaque payloads; this contract is used
to report shape drift in the model output, never to reject it.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


InterestType = Literal["concerts", "sports", "artDesign", "localCulture", "culinary"]


class DateRange(BaseModel):
    """Inclusive date range in YYYY-MM-DD format."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(alias="startDate", description="First day (YYYY-MM-DD)")
    end_date: str = Field(alias="endDate", description="Last day (YYYY-MM-DD)")


class Event(BaseModel):
    """A single event within a bundle."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = Field(description="Event title")
    full_description: str = Field(alias="fullDescription", description="Long description")
    short_description: str = Field(alias="shortDescription", description="One-line description")
    interest_type: InterestType = Field(alias="interestType", description="Interest category tag")
    date_range: DateRange = Field(alias="dateRange", description="When the event takes place")
    image_url: Optional[str] = Field(default=None, alias="imageUrl", description="Event image")
    event_website: Optional[str] = Field(
        default=None, alias="eventWebsite", description="Event website URL"
    )


class TripBundleV1(BaseModel):
    """
    Contract for a single trip bundle (v1).

    Key events must be non-empty; minor events may be empty.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = Field(description="Bundle title")
    trip_description: str = Field(alias="tripDescription", description="Bundle description")
    city: str = Field(description="City the bundle takes place in")
    date_range: DateRange = Field(alias="dateRange", description="Bundle date range")
    key_events: List[Event] = Field(alias="keyEvents", min_length=1, description="Headline events")
    minor_events: List[Event] = Field(
        default_factory=list, alias="minorEvents", description="Supporting events"
    )
    image_url: Optional[str] = Field(default=None, alias="imageUrl", description="Cover image")


def find_contract_violations(bundles: List[Dict[str, Any]]) -> List[str]:
    """
    Check bundles against the v1 contract without modifying them.

    Args:
        bundles: Bundle payloads as returned by the model

    Returns:
        One human-readable line per bundle that does not match the contract
    """
    violations = []
    for index, bundle in enumerate(bundles):
        if not isinstance(bundle, dict):
            violations.append(f"bundle[{index}]: not an object")
            continue
        try:
            TripBundleV1.model_validate(bundle)
        except ValidationError as e:
            violations.append(f"bundle[{index}]: {e.error_count()} field error(s)")
    return violations
