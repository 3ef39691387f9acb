"""Gap-and-go intraday decision engine."""

__version__ = "0.1.0"
