"""Dataset, matching and recognition services."""
