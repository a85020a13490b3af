#!/usr/bin/env python3
"""
SEO Opportunity Analysis Runner

Runs a complete opportunity analysis:
1. Keyword generation (Claude) unless keywords are given
2. Competitor detection (DataForSEO) unless competitors are given
3. Keyword data collection (volumes + rankings)
4. Opportunity report (traffic, customers, revenue)

Usage:
    # Set environment variables first (or put them in .env):
    export DATAFORSEO_LOGIN=your_login
    export DATAFORSEO_PASSWORD=your_password
    export ANTHROPIC_API_KEY=your_key

    # Local analysis:
    python scripts/run_analysis.py https://acmeroofing.com roofing 8500 \
        --location "Chicago, IL"

    # National analysis with known competitors, saved to a file:
    python scripts/run_analysis.py https://acme.com "project management software" 1200 \
        --scope national \
        --competitor https://asana.com --competitor https://monday.com \
        --output report.json
"""

import asyncio
import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from src.errors import (
    AnalysisCancelled,
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    UpstreamError,
)
from src.services import AnalysisRequest, run_seo_analysis
from src.utils.config import get_settings

logger = logging.getLogger(__name__)


def print_progress(stage: str, percent: int) -> None:
    print(f"[{percent:3d}%] {stage.replace('_', ' ')}")


async def run_analysis(args: argparse.Namespace) -> dict:
    """Run the analysis and return the result as a dict."""
    request = AnalysisRequest(
        client_url=args.url,
        business_type=args.business_type,
        customer_value=args.customer_value,
        scope=args.scope,
        location=args.location,
        competitor_urls=args.competitor or [],
        seed_keywords=args.keyword or [],
    )

    print(f"\n{'='*70}")
    print("SEO OPPORTUNITY ANALYSIS")
    print(f"{'='*70}")
    print(f"Website:        {request.client_url}")
    print(f"Business type:  {request.business_type}")
    print(f"Customer value: ${request.customer_value:,.2f}")
    print(f"Scope:          {request.scope}")
    print(f"Location:       {request.location or '(default)'}")
    print(f"{'='*70}\n")

    start_time = datetime.now()
    result = await run_seo_analysis(request, progress_callback=print_progress)
    duration = (datetime.now() - start_time).total_seconds()

    report = result.report
    print("\n" + "="*70)
    print("ANALYSIS COMPLETE")
    print("="*70)
    print(f"Keywords analysed:   {len(report.keyword_data)}")
    print(f"Total search volume: {report.total_search_volume:,}")
    print(f"Potential traffic:   {report.potential_traffic:,}")
    print(f"Conversion rate:     {report.conversion_rate}%")
    print(f"Potential customers: {report.potential_customers:,}")
    print(f"Potential revenue:   ${report.potential_revenue:,.2f}")
    print(f"Client top 10:       {report.current_rankings.top10}/{report.current_rankings.total}")
    for competitor in report.competitor_rankings:
        print(f"  {competitor.name}: top 10 {competitor.rankings.top10}")
    if result.claude_usage:
        print(f"Claude cost:         ${result.claude_usage['estimated_cost']:.4f}")
    print(f"Duration:            {duration:.1f} seconds")
    print("="*70 + "\n")

    return result.to_dict()


def main():
    """Main entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Estimate the SEO revenue opportunity for a website"
    )
    parser.add_argument(
        "url",
        help="Client website (e.g., https://acmeroofing.com)"
    )
    parser.add_argument(
        "business_type",
        help="Industry / business type (e.g., roofing)"
    )
    parser.add_argument(
        "customer_value",
        type=float,
        help="Average revenue per customer"
    )
    parser.add_argument(
        "--scope",
        default="local",
        choices=["local", "national"],
        help="Analysis scope (default: local)"
    )
    parser.add_argument(
        "--location",
        default=None,
        help='Location, e.g. "Chicago, IL" (required for local scope)'
    )
    parser.add_argument(
        "--competitor",
        action="append",
        help="Competitor URL (repeatable; detected automatically when omitted)"
    )
    parser.add_argument(
        "--keyword",
        action="append",
        help="Seed keyword (repeatable; generated with Claude when omitted)"
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the report JSON to this file instead of stdout"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        result = asyncio.run(run_analysis(args))
    except (ConfigurationError, InvalidInputError, NotFoundError) as e:
        print(f"ERROR: {e}")
        sys.exit(2)
    except (UpstreamError, AnalysisCancelled) as e:
        logger.error(f"Analysis failed: {e}")
        print(f"ERROR: {e}")
        sys.exit(1)

    output = json.dumps(result, indent=2)
    if args.output:
        Path(args.output).write_text(output)
        print(f"Report saved to: {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
