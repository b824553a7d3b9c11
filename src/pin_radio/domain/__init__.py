"""Domain layer - similarity ranking, player integration and queue sync."""
