"""Technical indicator math."""
