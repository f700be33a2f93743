"""Proxy implementation probes and the resolver that runs them."""
