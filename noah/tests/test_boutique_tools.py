"""Tests for boutique tool detection and rendering."""

import pytest

from noah.core.exceptions import NotFoundError
from noah.tools import BOUTIQUE_TOOLS, BoutiqueIntentDetector, BoutiqueToolIntent, render_boutique_tool, render_tool
from noah.tools.boutique_detector import extract_pomodoro_minutes


class TestBoutiqueIntentDetector:
    """Pattern matching over the six prebuilt tools."""

    def test_plain_question_is_not_a_tool(self):
        assert BoutiqueIntentDetector.detect_intent("what's the capital of France?").detected is False

    @pytest.mark.parametrize(
        "message, tool",
        [
            ("I need a scientific calculator", "scientific_calculator"),
            ("start a pomodoro", "pomodoro_timer"),
            ("convert celsius to fahrenheit", "unit_converter"),
            ("help me challenge my assumptions", "assumption_breaker"),
            ("open the time telescope", "time_telescope"),
            ("I want a word counter", "word_counter"),
            ("calculate 15% of 80", "scientific_calculator"),
            ("is 30°c to °f warm?", "unit_converter"),
            ("I keep unconsciously assuming the worst", "assumption_breaker"),
            ("help me see my decision from different time perspectives", "time_telescope"),
            ("help me understand my choice from multiple perspectives", "time_telescope"),
        ],
    )
    def test_each_tool_is_detected(self, message, tool):
        intent = BoutiqueIntentDetector.detect_intent(message)
        assert intent.detected is True
        assert intent.tool_name == tool
        assert intent.confidence >= BoutiqueIntentDetector.threshold

    def test_low_confidence_match_is_ignored(self):
        # "stuck on a decision" scores 0.88, below the 0.9 threshold
        assert BoutiqueIntentDetector.detect_intent("I'm stuck on a decision").detected is False
        assert BoutiqueIntentDetector.detect_intent("give me a future outlook").detected is False

    def test_calculator_theme_parameter(self):
        intent = BoutiqueIntentDetector.detect_intent("scientific calculator with a light theme")
        assert intent.parameters == {"theme": "light"}

    def test_pomodoro_minutes_parameter(self):
        intent = BoutiqueIntentDetector.detect_intent("start a 50/10 pomodoro")
        assert intent.tool_name == "pomodoro_timer"
        assert intent.parameters == {"work_minutes": 50, "break_minutes": 10}


class TestPomodoroMinutes:
    def test_defaults(self):
        assert extract_pomodoro_minutes("pomodoro please") == (25, 5)

    def test_worded_intervals(self):
        assert extract_pomodoro_minutes("45 min work and 15 min break") == (45, 15)

    def test_values_are_clamped(self):
        assert extract_pomodoro_minutes("90/45") == (60, 30)


class TestRendering:
    """HTML generation from templates."""

    def test_every_tool_renders_standalone_html(self):
        for name, tool in BOUTIQUE_TOOLS.items():
            result = render_tool(name)
            assert result.title == tool.title
            assert result.content.lstrip().startswith("<!DOCTYPE html>")
            assert "{{" not in result.content
            assert "NOAH_SAVE_REQUEST" in result.content

    def test_save_response_reads_nested_payload(self):
        content = render_tool("word_counter").content
        assert "NOAH_SAVE_RESPONSE" in content
        assert "var payload = data.payload || {};" in content
        assert "payload.success" in content
        assert "data.success" not in content

    def test_pomodoro_minutes_are_filled_in(self):
        result = render_tool("pomodoro_timer", {"work_minutes": 50, "break_minutes": 10})
        assert "workMinutes: 50" in result.content
        assert "breakMinutes: 10" in result.content

    def test_render_detected_intent(self):
        intent = BoutiqueIntentDetector.detect_intent("word counter")
        result = render_boutique_tool(intent)
        assert result.title == "Word Counter"
        assert result.tool_name == "word_counter"

    def test_unknown_tool(self):
        with pytest.raises(NotFoundError):
            render_tool("flux_capacitor")

    def test_undetected_intent(self):
        with pytest.raises(NotFoundError):
            render_boutique_tool(BoutiqueToolIntent(detected=False))
