"""Report output for match results."""
