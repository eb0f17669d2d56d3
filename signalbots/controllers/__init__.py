"""Scheduling controllers."""
