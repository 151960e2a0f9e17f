"""Multi-source local event aggregation for EventSwipe."""
