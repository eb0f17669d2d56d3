"""Outcome monitors for pending trades and smart entry orders."""
