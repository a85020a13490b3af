"""
Tests for seed keyword generation.

These tests verify:
- Local scope asks for neighbouring locations first, national does not
- Location patterns in both word orders
- Exact-string dedupe and the 50 keyword cap
- Generative failure yields an empty list instead of an error
"""

import pytest
from unittest.mock import AsyncMock

from src.context.keyword_generator import (
    KeywordGenerator,
    build_location_patterns,
    dedupe,
    generate_keywords,
    parse_keyword_list,
    parse_location_list,
)
from src.errors import GenerativeProviderError
from src.models import Scope


class TestParsing:
    """Test completion parsing helpers."""

    def test_parse_location_list(self):
        text = "Evanston, Oak Park, Skokie.\nCicero, Oak Park"
        assert parse_location_list(text) == ["Evanston", "Oak Park", "Skokie", "Cicero"]

    def test_parse_keyword_list_lines(self):
        text = "1. Roof Repair\n2. roof repair\n- Emergency  Roofer\n\n* \"metal roofing\""
        assert parse_keyword_list(text) == ["roof repair", "emergency roofer", "metal roofing"]

    def test_parse_keyword_list_commas(self):
        assert parse_keyword_list("roof repair, roofers, gutter repair") == [
            "roof repair", "roofers", "gutter repair",
        ]


class TestLocationPatterns:
    """Test service phrase x location expansion."""

    def test_both_word_orders(self):
        patterns = build_location_patterns("Roofing", ["Evanston"])

        assert "roofing evanston" in patterns
        assert "evanston roofing" in patterns
        assert "best roofing evanston" in patterns
        assert "evanston roofing near me" in patterns
        assert len(patterns) == 12

    def test_dedupe_preserves_order_and_caps(self):
        keywords = ["a", "b", "a", "c", "b", "d"]
        assert dedupe(keywords) == ["a", "b", "c", "d"]
        assert dedupe(keywords, limit=2) == ["a", "b"]


class TestKeywordGenerator:
    """Test generation for both scopes."""

    @pytest.mark.asyncio
    async def test_local_requests_neighbours_then_keywords(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(side_effect=[
            "Evanston, Oak Park",
            "roof repair chicago\nroofers near me",
        ])

        plan = await KeywordGenerator(mock_claude_client).generate_plan(
            "roofing", "Chicago, IL", Scope.LOCAL
        )

        assert mock_claude_client.complete.await_count == 2
        first_prompt = mock_claude_client.complete.await_args_list[0].args[0]
        assert "near Chicago, IL" in first_prompt
        assert plan.neighboring_locations == ["Evanston", "Oak Park"]
        assert plan.keywords[:2] == ["roof repair chicago", "roofers near me"]
        assert "roofing evanston" in plan.keywords
        assert "oak park roofing" in plan.keywords

    @pytest.mark.asyncio
    async def test_national_skips_neighbours(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(return_value="project management software\ngantt chart tool")

        keywords = await KeywordGenerator(mock_claude_client).generate(
            "project management software", "United States", Scope.NATIONAL
        )

        assert mock_claude_client.complete.await_count == 1
        prompt = mock_claude_client.complete.await_args.args[0]
        assert "across the country" in prompt
        assert keywords == ["project management software", "gantt chart tool"]

    @pytest.mark.asyncio
    async def test_output_capped_at_fifty(self, mock_claude_client):
        neighbours = ", ".join(f"Town {i}" for i in range(20))
        base = "\n".join(f"keyword {i}" for i in range(40))
        mock_claude_client.complete = AsyncMock(side_effect=[neighbours, base])

        keywords = await KeywordGenerator(mock_claude_client).generate("roofing", "Chicago", Scope.LOCAL)

        assert len(keywords) == 50
        assert len(set(keywords)) == 50
        assert keywords[:40] == [f"keyword {i}" for i in range(40)]

    @pytest.mark.asyncio
    async def test_failure_returns_empty_list(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(side_effect=GenerativeProviderError("rate limited"))

        keywords = await generate_keywords(mock_claude_client, "roofing", "Chicago", Scope.LOCAL)

        assert keywords == []

    @pytest.mark.asyncio
    async def test_failure_after_neighbours_returns_empty_list(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(side_effect=[
            "Evanston",
            GenerativeProviderError("empty completion"),
        ])

        keywords = await KeywordGenerator(mock_claude_client).generate("roofing", "Chicago", Scope.LOCAL)

        assert keywords == []
