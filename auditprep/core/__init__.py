"""Shared configuration, chain table, errors, types and logging."""
