"""sec-metrics: confidence-ranked financial metric extraction from SEC filings."""

__version__ = "0.1.0"
