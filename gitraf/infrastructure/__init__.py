"""Infrastructure layer for gitraf."""
