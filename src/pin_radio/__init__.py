"""Pin Radio - keeps an MPD queue filled with songs similar to the one playing."""

__version__ = "0.1.0"
