"""Floor plan export."""
