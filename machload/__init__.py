"""HTTP load testing with run history, a history dashboard and tagged before/after comparisons."""

__version__ = "1.1.1"