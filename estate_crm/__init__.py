"""
Estate CRM API.
Listings, buyers, property-buyer matching and a public catalog for real-estate agents.
"""

__version__ = "1.0.0"
