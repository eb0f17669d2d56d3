"""Risk/reward and trade construction."""
