"""Parameterised bot pipeline and registry."""
