"""Parsing of model completions into structured results."""

from __future__ import annotations

from stayx.ai.parsing import (
    DEFAULT_MATCH_REASON,
    INSIGHT_PLACEHOLDER_CONTENT,
    INSIGHT_PLACEHOLDER_TITLE,
    SUGGESTION_PLACEHOLDER,
    SUMMARY_FALLBACK,
    parse_insights,
    parse_match_analysis,
    parse_suggestions,
    parse_summary,
)
from stayx.ai.prompts import format_fields, suggestions_prompt, summarize_prompt


class TestParseSummary:
    def test_strips_whitespace(self):
        assert parse_summary("  They talked about DeFi.\n") == "They talked about DeFi."

    def test_blank_falls_back(self):
        assert parse_summary("   ") == SUMMARY_FALLBACK


class TestParseSuggestions:
    def test_splits_on_separator(self):
        text = "Sounds great! ### Tell me more. ### Let's meet up."
        assert parse_suggestions(text, 3) == ["Sounds great!", "Tell me more.", "Let's meet up."]

    def test_pads_short_output(self):
        assert parse_suggestions("Only one", 3) == ["Only one", SUGGESTION_PLACEHOLDER, SUGGESTION_PLACEHOLDER]

    def test_truncates_and_drops_empty_parts(self):
        text = "### A ###  ### B ### C ### D"
        assert parse_suggestions(text, 2) == ["A", "B"]


class TestParseInsights:
    def test_parses_three_pairs(self):
        text = (
            "Title 1: Growing network\nContent 1: You made 3 new connections.\n\n"
            "Title 2: Chatty week\nContent 2: You sent 40 messages.\n\n"
            "Title 3: Explore DeFi\nContent 3: Many peers are into DeFi.\n"
        )
        insights = parse_insights(text)
        assert insights == [
            {"title": "Growing network", "content": "You made 3 new connections."},
            {"title": "Chatty week", "content": "You sent 40 messages."},
            {"title": "Explore DeFi", "content": "Many peers are into DeFi."},
        ]

    def test_pads_to_three(self):
        insights = parse_insights("Title 1: Only one\nContent 1: Just this.")
        assert len(insights) == 3
        assert insights[0] == {"title": "Only one", "content": "Just this."}
        assert insights[1] == {"title": INSIGHT_PLACEHOLDER_TITLE, "content": INSIGHT_PLACEHOLDER_CONTENT}

    def test_unstructured_text_gives_placeholders(self):
        insights = parse_insights("I cannot help with that.")
        assert [i["title"] for i in insights] == [INSIGHT_PLACEHOLDER_TITLE] * 3


class TestParseMatchAnalysis:
    def test_score_and_reasons(self):
        text = "Score: 82\n\nReasons:\n1. Both love Bitcoin.\n2. Shared AI interest.\n3. Same city."
        score, reasons = parse_match_analysis(text)
        assert score == 82
        assert reasons == ["Both love Bitcoin.", "Shared AI interest.", "Same city."]

    def test_score_is_clamped(self):
        score, _ = parse_match_analysis("score: 250\nReasons:\n1. Wow")
        assert score == 100

    def test_missing_score_defaults(self):
        score, reasons = parse_match_analysis("Reasons:\n1. Something")
        assert score == 50
        assert reasons == ["Something"]

    def test_missing_reasons_default(self):
        score, reasons = parse_match_analysis("Score: 40")
        assert score == 40
        assert reasons == [DEFAULT_MATCH_REASON]

    def test_decimal_inside_reason_is_not_a_new_item(self):
        _, reasons = parse_match_analysis("Score: 60\nReasons:\n1. Holds 2.5 BTC each.\n2. Both in Lisbon.")
        assert reasons == ["Holds 2.5 BTC each.", "Both in Lisbon."]


class TestPrompts:
    def test_conversation_roles(self):
        prompt = summarize_prompt([{"role": "user", "content": "hi"}, {"role": "assistant", "content": "yo"}], 80)
        assert "User: hi\nAssistant: yo" in prompt
        assert "under 80 characters" in prompt

    def test_suggestions_context_only_when_given(self):
        assert "Context:" not in suggestions_prompt([{"role": "user", "content": "hi"}])
        assert "Context: conference" in suggestions_prompt([{"role": "user", "content": "hi"}], "conference")

    def test_private_fields_hidden(self):
        text = format_fields({"username": "alice", "email": "a@example.com", "interests": ["AI", "Go"]})
        assert "email" not in text
        assert "interests: AI, Go" in text
