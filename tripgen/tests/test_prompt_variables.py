"""
Tests for prompt variable formatting and preference validation.
"""

import json

import pytest
from pydantic import ValidationError

from tripgen.prompts.variables import (
    PROMPT_VARIABLE_NAMES,
    UserPreferences,
    format_music_taste,
    format_prompt_variables,
)


def _make_preferences(**overrides):
    data = {
        "interests": ["concerts", "culinary"],
        "musicProfile": "indie rock, some jazz",
        "timeframe": "June 2025",
        "otherPreferences": "Prefer smaller venues",
    }
    data.update(overrides)
    return UserPreferences.model_validate(data)


class TestFormatPromptVariables:
    """Tests for the four template variables."""

    def test_exactly_four_variables(self):
        """The mapping carries exactly the template's variable names."""
        variables = format_prompt_variables(_make_preferences())
        assert set(variables) == set(PROMPT_VARIABLE_NAMES)

    def test_interests_use_display_labels_in_selection_order(self):
        """Interest ids are rendered as labels, joined by comma and space."""
        prefs = _make_preferences(interests=["artDesign", "concerts", "localCulture"])
        assert format_prompt_variables(prefs)["interests"] == "Art & Design, Concerts, Local Culture"

    def test_free_text_music_profile(self):
        """Without a streaming profile the free-text taste is used verbatim."""
        assert format_prompt_variables(_make_preferences())["music_taste"] == "indie rock, some jazz"

    def test_date_range_is_timeframe(self):
        """The timeframe is passed through unchanged."""
        assert format_prompt_variables(_make_preferences())["date_range"] == "June 2025"

    def test_missing_other_preferences_renders_none(self):
        """Absent free-text requests are rendered as the word None."""
        prefs = _make_preferences(otherPreferences=None)
        assert format_prompt_variables(prefs)["free_text_requests"] == "None"

    def test_other_preferences_passed_through(self):
        """Free-text requests are passed through."""
        assert format_prompt_variables(_make_preferences())["free_text_requests"] == "Prefer smaller venues"


class TestMusicTaste:
    """Tests for the streaming profile summary."""

    def test_streaming_profile_replaces_free_text(self):
        """A connected profile is summarized as compact JSON."""
        prefs = _make_preferences(
            spotifyMusicProfile={
                "artists": ["Björk", {"name": "Khruangbin", "id": "abc"}],
                "genres": ["art pop", "psychedelic soul"],
            }
        )
        taste = format_music_taste(prefs)
        assert taste == '{"artists":["Björk","Khruangbin"],"genres":["art pop","psychedelic soul"]}'
        assert json.loads(taste)["artists"] == ["Björk", "Khruangbin"]

    def test_empty_streaming_profile(self):
        """An empty profile still produces the JSON summary."""
        prefs = _make_preferences(spotifyMusicProfile={})
        assert format_music_taste(prefs) == '{"artists":[],"genres":[]}'


class TestUserPreferencesValidation:
    """Tests for preference validation."""

    def test_snake_case_names_accepted(self):
        """Field names are accepted alongside the camelCase aliases."""
        prefs = UserPreferences(interests=["sports"], timeframe="July", music_profile="none")
        assert prefs.music_profile == "none"

    def test_empty_interests_rejected(self):
        """At least one interest is required."""
        with pytest.raises(ValidationError):
            _make_preferences(interests=[])

    def test_unknown_interest_rejected(self):
        """Interests outside the five categories are rejected."""
        with pytest.raises(ValidationError):
            _make_preferences(interests=["gaming"])

    def test_blank_timeframe_rejected(self):
        """A whitespace-only timeframe is rejected."""
        with pytest.raises(ValidationError):
            _make_preferences(timeframe="   ")

    def test_preferences_are_immutable(self):
        """Submitted preferences cannot be modified."""
        prefs = _make_preferences()
        with pytest.raises(ValidationError):
            prefs.timeframe = "August"
