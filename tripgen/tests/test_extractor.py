"""
Tests for bundle extraction from the model's final message.

Covers message text lookup, the JSON repair pass, cover image assignment
and progress summary titles.
"""

import json
import random

from tripgen.generation.events import extract_summary_title
from tripgen.generation.extractor import (
    assign_cover_images,
    bundle_cover_image,
    extract_bundles,
    extract_message_text,
    repair_json,
)


# ============================================================================
# Test Fixtures
# ============================================================================


def _make_event(title="Jazz Night", image_url=None):
    event = {
        "title": title,
        "fullDescription": "An evening of live jazz.",
        "shortDescription": "Live jazz",
        "interestType": "concerts",
        "dateRange": {"startDate": "2025-06-01", "endDate": "2025-06-01"},
    }
    if image_url is not None:
        event["imageUrl"] = image_url
    return event


def _make_bundle(key_events=None, minor_events=None):
    return {
        "title": "Lisbon Sounds",
        "tripDescription": "A weekend of music in Lisbon.",
        "city": "Lisbon",
        "dateRange": {"startDate": "2025-06-01", "endDate": "2025-06-03"},
        "keyEvents": key_events if key_events is not None else [_make_event()],
        "minorEvents": minor_events if minor_events is not None else [],
    }


def _make_message(text, content_type="output_text"):
    return {"type": "message", "content": [{"type": content_type, "text": text}]}


# ============================================================================
# TestExtractMessageText
# ============================================================================


class TestExtractMessageText:
    """Tests for locating the final message text."""

    def test_returns_output_text_of_first_message(self):
        """The first message item's output_text is returned."""
        items = [
            {"type": "reasoning", "summary": []},
            _make_message("first"),
            _make_message("second"),
        ]
        assert extract_message_text(items) == "first"

    def test_falls_back_to_plain_text_content(self):
        """Plain text content is used when there is no output_text."""
        assert extract_message_text([_make_message("plain", content_type="text")]) == "plain"

    def test_prefers_output_text_over_text(self):
        """output_text wins even when a text part comes first."""
        message = {
            "type": "message",
            "content": [{"type": "text", "text": "plain"}, {"type": "output_text", "text": "rich"}],
        }
        assert extract_message_text([message]) == "rich"

    def test_no_message_returns_none(self):
        """Output without a message item yields None."""
        assert extract_message_text([{"type": "function_call", "name": "x"}]) is None

    def test_message_without_text_returns_none(self):
        """A message with empty content yields None."""
        assert extract_message_text([{"type": "message", "content": []}]) is None


# ============================================================================
# TestExtractBundles
# ============================================================================


class TestExtractBundles:
    """Tests for strict parsing with a single repair pass."""

    def test_valid_document_parses(self):
        """A well-formed document returns its bundles unchanged."""
        bundles = [_make_bundle()]
        assert extract_bundles(json.dumps({"bundles": bundles})) == bundles

    def test_empty_text_returns_none(self):
        """Empty or missing text yields None."""
        assert extract_bundles("") is None
        assert extract_bundles(None) is None

    def test_trailing_commas_are_repaired(self):
        """Trailing commas before closing brackets are dropped."""
        text = '{"bundles": [{"title": "A", "city": "Lisbon",},],}'
        assert extract_bundles(text) == [{"title": "A", "city": "Lisbon"}]

    def test_code_fence_is_unwrapped(self):
        """A markdown code block around the document is removed."""
        text = '```json\n{"bundles": [{"title": "A"}]}\n```'
        assert extract_bundles(text) == [{"title": "A"}]

    def test_stray_quote_inside_value_is_escaped(self):
        """A quote inside a string value does not end the string."""
        text = '{"bundles": [{"title": "The "Blue" Note", "city": "Lisbon"}]}'
        assert extract_bundles(text) == [{"title": 'The "Blue" Note', "city": "Lisbon"}]

    def test_unrepairable_text_returns_none(self):
        """Text that is not JSON even after repair yields None."""
        assert extract_bundles("Sorry, I could not find any events.") is None

    def test_missing_bundles_key_returns_none(self):
        """A document without a bundles array yields None."""
        assert extract_bundles('{"trips": []}') is None

    def test_empty_bundles_array_is_kept(self):
        """An explicit empty array is a valid result."""
        assert extract_bundles('{"bundles": []}') == []


class TestRepairJson:
    """Tests for the repair pass in isolation."""

    def test_valid_json_is_unchanged(self):
        """Repair leaves a valid document semantically unchanged."""
        text = '{"a": "b, c", "d": [1, 2]}'
        assert json.loads(repair_json(text)) == json.loads(text)

    def test_escaped_quotes_are_preserved(self):
        """Already-escaped quotes are not escaped twice."""
        text = '{"a": "say \\"hi\\""}'
        assert json.loads(repair_json(text)) == {"a": 'say "hi"'}


# ============================================================================
# TestCoverImages
# ============================================================================


class TestCoverImages:
    """Tests for bundle cover image selection."""

    def test_first_key_event_image_wins(self):
        """The first key event with an image supplies the cover."""
        bundle = _make_bundle(
            key_events=[_make_event(), _make_event(image_url="https://img/a.jpg")],
            minor_events=[_make_event(image_url="https://img/b.jpg")],
        )
        assert bundle_cover_image(bundle) == "https://img/a.jpg"

    def test_minor_event_image_used_when_key_events_have_none(self):
        """Minor events are consulted after key events."""
        bundle = _make_bundle(minor_events=[_make_event(image_url="https://img/b.jpg")])
        assert bundle_cover_image(bundle) == "https://img/b.jpg"

    def test_blank_image_is_skipped(self):
        """A whitespace-only image URL does not count."""
        bundle = _make_bundle(
            key_events=[_make_event(image_url="  "), _make_event(image_url="https://img/c.png")]
        )
        assert bundle_cover_image(bundle) == "https://img/c.png"

    def test_fallback_when_no_event_has_an_image(self):
        """Bundles without event images get a bundled fallback asset."""
        image = bundle_cover_image(_make_bundle(), random.Random(3))
        assert image.startswith("/fallback-images/")
        assert image.endswith(".png")
        assert 1 <= int(image.split("/")[-1].split(".")[0]) <= 10

    def test_assign_sets_image_on_every_bundle(self):
        """Every object bundle gets an imageUrl; other entries are untouched."""
        bundles = [_make_bundle(key_events=[_make_event(image_url="https://img/a.jpg")]), "oops"]
        assign_cover_images(bundles, random.Random(0))
        assert bundles[0]["imageUrl"] == "https://img/a.jpg"
        assert bundles[1] == "oops"


# ============================================================================
# TestSummaryTitle
# ============================================================================


class TestSummaryTitle:
    """Tests for reducing reasoning summaries to titles."""

    def test_leading_bold_span_becomes_title(self):
        """A summary starting with a bold span is reduced to that span."""
        text = "**Searching Lisbon jazz venues**\n\nI am looking at venues near..."
        assert extract_summary_title(text) == "Searching Lisbon jazz venues"

    def test_plain_text_is_kept_without_bold_markers(self):
        """Without a leading bold span the whole text is kept, markers removed."""
        assert extract_summary_title("Checking **dates** for June") == "Checking dates for June"

    def test_whitespace_is_trimmed(self):
        """Surrounding whitespace is removed."""
        assert extract_summary_title("  Looking for events  ") == "Looking for events"
