"""Per-bot JSON trade ledgers."""
