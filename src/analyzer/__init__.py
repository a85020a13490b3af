"""
SEO Opportunity Engine - Claude Client

Single-turn completions with token usage and cost tracking.
"""

from .client import AnalysisResponse, ClaudeClient, TokenUsage

__all__ = [
    "ClaudeClient",
    "AnalysisResponse",
    "TokenUsage",
]
