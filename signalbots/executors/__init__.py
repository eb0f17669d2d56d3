"""Simulated and real trade execution."""
