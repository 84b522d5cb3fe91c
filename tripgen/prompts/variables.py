"""
Prompt variable formatting.

Turns the user's preferences into the four named variables the hosted
prompt template expects: interests, music_taste, date_range and
free_text_requests.
"""

import json
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripgen.shared.contracts.bundle_output import InterestType


# Display labels in the order the template was written against
INTEREST_LABELS: Dict[str, str] = {
    "concerts": "Concerts",
    "sports": "Sports",
    "artDesign": "Art & Design",
    "localCulture": "Local Culture",
    "culinary": "Culinary",
}

PROMPT_VARIABLE_NAMES = ("interests", "music_taste", "date_range", "free_text_requests")


class ArtistRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class MusicProfile(BaseModel):
    """Listening profile pulled from the user's music streaming account."""

    model_config = ConfigDict(frozen=True)

    artists: List[Union[str, ArtistRef]] = Field(default_factory=list, max_length=1000)
    genres: List[str] = Field(default_factory=list, max_length=1000)

    def artist_names(self) -> List[str]:
        return [a if isinstance(a, str) else a.name for a in self.artists]


class UserPreferences(BaseModel):
    """
    Preferences collected by the onboarding flow.

    Immutable once submitted. Accepts both snake_case and the camelCase
    names used by the web client.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    interests: List[InterestType] = Field(min_length=1, description="Selected interest categories")
    music_profile: str = Field(default="", alias="musicProfile", description="Free-text music taste")
    timeframe: str = Field(description="Desired travel timeframe")
    other_preferences: Optional[str] = Field(
        default=None, alias="otherPreferences", description="Additional free-text requests"
    )
    spotify_music_profile: Optional[MusicProfile] = Field(
        default=None, alias="spotifyMusicProfile", description="Connected streaming profile"
    )

    @field_validator("timeframe")
    @classmethod
    def _timeframe_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("timeframe must not be empty")
        return value


def format_music_taste(preferences: UserPreferences) -> str:
    """Free-text taste, replaced by a compact JSON summary when a streaming profile is attached."""
    profile = preferences.spotify_music_profile
    if profile is None:
        return preferences.music_profile
    return json.dumps(
        {"artists": profile.artist_names(), "genres": list(profile.genres)},
        separators=(",", ":"),
        ensure_ascii=False,
    )


def format_prompt_variables(preferences: UserPreferences) -> Dict[str, str]:
    """
    Build the prompt template variables.

    Args:
        preferences: Submitted user preferences

    Returns:
        Mapping with exactly the keys interests, music_taste, date_range
        and free_text_requests
    """
    return {
        "interests": ", ".join(INTEREST_LABELS[interest] for interest in preferences.interests),
        "music_taste": format_music_taste(preferences),
        "date_range": preferences.timeframe,
        "free_text_requests": preferences.other_preferences or "None",
    }
