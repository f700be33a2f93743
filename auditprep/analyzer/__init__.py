"""Proxy resolution and audit triage."""
