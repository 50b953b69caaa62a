"""Seasonal storefront API - curated supplier products for the active season."""
