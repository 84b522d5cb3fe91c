"""Prompt template variables."""

from tripgen.prompts.variables import (
    INTEREST_LABELS,
    MusicProfile,
    UserPreferences,
    format_prompt_variables,
)

__all__ = ["INTEREST_LABELS", "MusicProfile", "UserPreferences", "format_prompt_variables"]
