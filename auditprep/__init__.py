"""auditprep — resolve EVM proxies and prepare verified contract sources for manual audit."""

__version__ = "1.0.0"
