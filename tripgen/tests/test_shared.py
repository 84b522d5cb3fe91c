"""
Tests for shared infrastructure: the bundle contract check, run timing
and the graph configuration.
"""

import io
import json
import logging

from tripgen.generation.graph.config import GenerationGraphConfig, get_config
from tripgen.generation.graph.router import route_after_model
from tripgen.shared.contracts.bundle_output import find_contract_violations
from tripgen.shared.logging.config import StructuredFormatter, configure_logging, log_state_transition
from tripgen.shared.logging.timing import RunTimer, format_duration
from tripgen.tests.scripted import make_bundle


# ============================================================================
# TestContracts
# ============================================================================


class TestContracts:
    """Tests for reporting bundle shape drift."""

    def test_valid_bundle_has_no_violations(self):
        """A well-formed bundle passes."""
        assert find_contract_violations([make_bundle()]) == []

    def test_violations_are_reported_per_bundle(self):
        """Malformed bundles are reported by index without being modified."""
        broken = make_bundle()
        broken["keyEvents"] = []
        bundles = [make_bundle(), broken, "oops"]
        violations = find_contract_violations(bundles)
        assert len(violations) == 2
        assert violations[0].startswith("bundle[1]")
        assert violations[1] == "bundle[2]: not an object"
        assert bundles[1]["keyEvents"] == []


# ============================================================================
# TestTiming
# ============================================================================


class _StepClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTiming:
    """Tests for run timing accumulation."""

    def test_format_duration(self):
        """Durations render as ms, seconds or minutes."""
        assert format_duration(850) == "850ms"
        assert format_duration(12400) == "12.40s"
        assert format_duration(125100) == "2m 5.10s"

    def test_accumulated_stats(self):
        """Model and tool time are accumulated separately from overhead."""
        clock = _StepClock()
        timer = RunTimer("gen-1", clock=clock)

        started = timer.now()
        clock.now = 2.0
        timer.log_model_response(started)

        started = timer.now()
        clock.now = 2.5
        timer.log_tool_calls(3, started)

        clock.now = 3.0
        stats = timer.log_summary("completed")
        assert stats["model_response_count"] == 1
        assert stats["model_total_ms"] == 2000.0
        assert stats["tool_call_count"] == 3
        assert stats["tool_total_ms"] == 500.0
        assert stats["overhead_ms"] == 500.0


# ============================================================================
# TestStructuredLogging
# ============================================================================


class TestStructuredLogging:
    """Tests for logging configuration and state transition logging."""

    def test_state_transition_record(self):
        """The transition carries a summary of the generation state."""
        records = []

        class _Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger = logging.getLogger("tripgen.tests.transitions")
        logger.addHandler(_Collect())
        logger.setLevel(logging.INFO)

        state = {"generation_id": "gen-1", "phase": "completed", "tool_rounds": 2, "conversation": [{}, {}]}
        log_state_transition("run_completed", state, extra={"bundles": 3}, logger=logger)

        entry = json.loads(StructuredFormatter().format(records[0]))
        assert entry["message"] == "State transition: run_completed"
        assert entry["extra"]["state_summary"]["tool_rounds"] == 2
        assert entry["extra"]["state_summary"]["conversation_items"] == 2
        assert entry["extra"]["extra"] == {"bundles": 3}

    def test_json_output(self, tmp_path):
        """JSON mode writes one object per line to the stream and the log file."""
        stream = io.StringIO()
        log_file = tmp_path / "tripgen.log"
        logger = configure_logging(
            "INFO", json_output=True, log_file=str(log_file), stream=stream, logger_name="tripgen.tests.json"
        )
        logger.propagate = False

        logger.info("Run starting")
        logger.debug("hidden")
        for handler in logger.handlers:
            handler.flush()

        entry = json.loads(stream.getvalue())
        assert entry["level"] == "INFO"
        assert entry["logger"] == "tripgen.tests.json"
        assert entry["message"] == "Run starting"
        assert json.loads(log_file.read_text()) == entry
        assert all(isinstance(h.formatter, StructuredFormatter) for h in logger.handlers)

    def test_pipe_output_replaces_handlers(self):
        """Reconfiguring swaps the handlers and uses the pipe format by default."""
        first, second = io.StringIO(), io.StringIO()
        configure_logging(stream=first, logger_name="tripgen.tests.pipe")
        logger = configure_logging(level="WARNING", stream=second, logger_name="tripgen.tests.pipe")
        logger.propagate = False

        logger.info("dropped")
        logger.warning("Sweep failed")

        assert len(logger.handlers) == 1
        assert first.getvalue() == ""
        line = second.getvalue().rstrip()
        assert " | WARNING  | tripgen.tests.pipe " in line
        assert line.endswith(" | Sweep failed")


# ============================================================================
# TestGraphConfig
# ============================================================================


class TestGraphConfig:
    """Tests for graph configuration and routing."""

    def test_defaults(self):
        """The loop allows ten tool rounds by default."""
        config = GenerationGraphConfig()
        assert config.max_tool_rounds == 10
        assert config.recursion_limit > 2 * config.max_tool_rounds

    def test_overrides(self):
        """Explicit overrides win over defaults."""
        config = get_config(prompt_id="pmpt_x", max_tool_rounds=3, stream=False)
        assert config.prompt_id == "pmpt_x"
        assert config.max_tool_rounds == 3
        assert config.stream is False

    def test_routing(self):
        """The phase set by the model node picks the next node."""
        assert route_after_model({"phase": "tools"}) == "execute_tools"
        assert route_after_model({"phase": "extract"}) == "extract_result"
        assert route_after_model({"phase": "failed"}) == "fail"
