"""
SEO Opportunity Engine Services Layer

Orchestrates the collectors, the context layer and scoring into one analysis.
"""

from .analysis import AnalysisRequest, AnalysisResult, run_seo_analysis

__all__ = ["AnalysisRequest", "AnalysisResult", "run_seo_analysis"]
