"""Writes triaged sources and audit manifests to disk."""
