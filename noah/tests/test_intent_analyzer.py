"""Tests for request classification."""

import pytest

from noah.intent import analyze_request, is_simple_question


class TestAnalyzeRequest:
    """Routing decisions for the latest user message."""

    def test_build_request_needs_building(self):
        analysis = analyze_request("build me a calculator")
        assert analysis.needs_building is True
        assert analysis.needs_research is False
        assert analysis.delegates is True
        assert analysis.confidence == 0.8

    @pytest.mark.parametrize(
        "message",
        [
            "create a simple habit tracker",
            "Can you make a todo app for my team?",
            "write a small script that renames files",
        ],
    )
    def test_build_verbs_with_tool_nouns(self, message):
        assert analyze_request(message).needs_building is True

    @pytest.mark.parametrize(
        "message",
        [
            "what is a build tool?",
            "how do I write a script in bash?",
            "why does my app crash when I make a form?",
            "tell me about the tool chain we build with",
        ],
    )
    def test_questions_about_tools_stay_with_noah(self, message):
        assert analyze_request(message).needs_building is False

    def test_hypothetical_build_still_delegates(self):
        assert analyze_request("what if you build me a simple timer?").needs_building is True

    def test_research_indicator(self):
        analysis = analyze_request("Do a market analysis of note-taking apps")
        assert analysis.needs_research is True
        assert analysis.needs_building is False

    def test_research_plus_complex_build(self):
        analysis = analyze_request("research and compare CRMs, then make an interactive dashboard")
        assert analysis.needs_research is True
        assert analysis.needs_building is True

    def test_creative_thinking_goes_to_research(self):
        analysis = analyze_request("help me brainstorm names for a bakery")
        assert analysis.needs_research is True
        assert analysis.needs_building is False

    def test_negated_build_is_handled_directly(self):
        analysis = analyze_request("don't build anything, just tell me about timers")
        assert analysis.needs_building is False
        assert analysis.delegates is False
        assert analysis.is_ambiguous is False

    def test_vague_build_is_ambiguous(self):
        analysis = analyze_request("make something")
        assert analysis.is_ambiguous is True
        assert analysis.delegates is False
        assert analysis.confidence == 0.6

    def test_bare_build_verb_is_ambiguous(self):
        assert analyze_request("can you build?").is_ambiguous is True

    def test_conversation_is_direct(self):
        analysis = analyze_request("hello there, how's your day?")
        assert analysis.delegates is False
        assert analysis.is_ambiguous is False
        assert analysis.confidence == 0.9
        assert analysis.reasoning


class TestSimpleQuestion:
    """Fast-path detection for short factual questions."""

    def test_factual_question(self):
        assert is_simple_question("what is the capital of France?") is True

    def test_build_words_disqualify(self):
        assert is_simple_question("what is the best way to create a website") is False

    def test_long_messages_disqualify(self):
        assert is_simple_question("what is " + "very " * 30 + "long") is False

    def test_no_pattern(self):
        assert is_simple_question("tell me a joke") is False
