"""Audit-relevance classification of verified source files."""
