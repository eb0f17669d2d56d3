"""Multi-symbol candidate selection."""
