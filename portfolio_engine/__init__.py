# portfolio_engine/__init__.py
"""
Portfolio Valuation & Exposure Aggregation Engine.

Answers two questions for a multi-account portfolio:
- What was the portfolio worth on every day of a historical window?
- What does the portfolio actually own once ETFs and funds are expanded
  into their underlying constituents?

Packages:
- services: Quote fetching, history replay, look-through aggregation
- routers/schemas: FastAPI HTTP surface
- utils: Logging and request context
"""

__version__ = "0.1.0"
