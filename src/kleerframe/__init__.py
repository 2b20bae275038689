"""KLEERFRAME – near-duplicate photo detection."""

__version__ = "0.1.0"
