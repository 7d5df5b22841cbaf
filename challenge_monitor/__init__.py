"""Challenge Monitor: habit challenges tracked through an append-only daily log."""

__version__ = "0.1.0"
