"""End-to-end fetch pipeline."""
