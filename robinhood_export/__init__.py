"""robinhood-export: flat exports of a Robinhood account."""

__version__ = "0.1.0"
