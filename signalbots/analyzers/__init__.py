"""Technical analyzers producing trade decisions."""
