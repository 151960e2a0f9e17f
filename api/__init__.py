"""HTTP surface for EventSwipe discovery."""
