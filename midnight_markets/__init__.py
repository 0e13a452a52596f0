"""Market-data aggregation core for the Midnight Markets dashboard."""

__version__ = "1.0.0"
