"""Market data fetching."""
