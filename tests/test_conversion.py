"""
Tests for conversion rate estimation.

These tests verify:
- Claude estimates are parsed and range-checked
- Any generative failure falls back to the static industry table
- Industry table lookup: exact, containment, synonyms, defaults
"""

import pytest
from unittest.mock import AsyncMock

from src.errors import GenerativeProviderError
from src.models import Scope
from src.scoring.conversion import (
    INDUSTRY_CONVERSION_RATES,
    ConversionRateEstimator,
    get_fallback_conversion_rate,
    get_industry_conversion_rate,
    normalize_business_type,
    parse_conversion_rate,
)


class TestParseConversionRate:
    """Test completion parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("3.5", 3.5),
        (" 4.2% ", 4.2),
        ("10", 10.0),
        ("2.75.", 2.75),
    ])
    def test_valid(self, text, expected):
        assert parse_conversion_rate(text) == expected

    @pytest.mark.parametrize("text", ["about three percent", "", "0.05", "0.1", "12", "-1"])
    def test_invalid(self, text):
        with pytest.raises(GenerativeProviderError):
            parse_conversion_rate(text)


class TestFallbackTable:
    """Test static industry lookup."""

    def test_roofing_local_is_exact(self):
        assert get_fallback_conversion_rate("roofing", Scope.LOCAL) == 4.2
        assert get_fallback_conversion_rate("roofing", Scope.NATIONAL) == 2.2

    def test_table_size_and_local_premium(self):
        industries = [k for k in INDUSTRY_CONVERSION_RATES if not k.startswith("default")]
        assert len(industries) >= 45
        for rates in INDUSTRY_CONVERSION_RATES.values():
            assert 0 < rates["national"] <= rates["local"] <= 10

    @pytest.mark.parametrize("business_type,industry", [
        ("Roofing Services", "roofing"),
        ("roofing company", "roofing"),
        ("Commercial HVAC installation", "hvac"),
        ("Emergency Plumbing & Drain", "plumbing"),
        ("Personal injury lawyer", "legal"),
        ("Attorneys", "legal"),
        ("Vet", "veterinary"),
        ("Family dentist", "dental"),
        ("Plumber", "plumbing"),
    ])
    def test_industry_matching(self, business_type, industry):
        expected = INDUSTRY_CONVERSION_RATES[industry]["local"]
        assert get_fallback_conversion_rate(business_type, Scope.LOCAL) == expected

    @pytest.mark.parametrize("business_type,industry", [
        ("Street food", "default service"),
        ("Carpool cleaning", "cleaning"),
        ("Removing service", "default service"),
        ("Electricians", "electrician"),
    ])
    def test_industry_matches_whole_words(self, business_type, industry):
        expected = INDUSTRY_CONVERSION_RATES[industry]["local"]
        assert get_fallback_conversion_rate(business_type, Scope.LOCAL) == expected

    def test_default_product(self):
        expected = INDUSTRY_CONVERSION_RATES["default product"]["national"]
        assert get_fallback_conversion_rate("Handmade candle shop", Scope.NATIONAL) == expected

    def test_default_service(self):
        expected = INDUSTRY_CONVERSION_RATES["default service"]["local"]
        assert get_fallback_conversion_rate("Quantum widgetry", Scope.LOCAL) == expected

    def test_normalize_business_type(self):
        assert normalize_business_type("  Roofing, Inc. Services ") == "roofing inc"
        assert normalize_business_type("Coffee Shop") == "coffee"


class TestConversionRateEstimator:
    """Test the Claude-backed estimator."""

    @pytest.mark.asyncio
    async def test_uses_claude_estimate(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(return_value="5.1")

        rate = await ConversionRateEstimator(mock_claude_client).estimate("roofing", Scope.LOCAL)

        assert rate == 5.1
        prompt = mock_claude_client.complete.await_args.args[0]
        assert "roofing" in prompt
        assert "local" in prompt
        assert "30%" in prompt

    @pytest.mark.asyncio
    async def test_unparseable_output_falls_back(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(return_value="It depends on many factors.")

        rate = await ConversionRateEstimator(mock_claude_client).estimate("roofing", Scope.LOCAL)

        assert rate == 4.2

    @pytest.mark.asyncio
    async def test_out_of_range_falls_back(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(return_value="45")

        rate = await ConversionRateEstimator(mock_claude_client).estimate("roofing", Scope.NATIONAL)

        assert rate == 2.2

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self, mock_claude_client):
        mock_claude_client.complete = AsyncMock(side_effect=GenerativeProviderError("overloaded"))

        rate = await get_industry_conversion_rate("roofing", Scope.LOCAL, mock_claude_client)

        assert rate == 4.2

    @pytest.mark.asyncio
    async def test_without_client_uses_table(self):
        assert await ConversionRateEstimator().estimate("dental", "national") == 3.2
