"""Proxycurl tool functions; each takes the shared client as first argument."""
