"""
SEO Opportunity Engine

Estimates the revenue a business could win from organic search:
1. Generates seed keywords with Claude
2. Collects search volume and rankings from DataForSEO
3. Compares the client's rankings with its competitors'
4. Projects traffic, customers and revenue
"""

__version__ = "0.1.0"
