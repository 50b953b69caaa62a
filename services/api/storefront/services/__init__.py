"""Business logic services.

Services contain all business logic and are called by routes.
Pricing, staleness and option selection are pure functions; store and
supplier access are isolated in their own helpers.
"""
