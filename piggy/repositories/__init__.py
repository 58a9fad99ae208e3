"""Repositories: session-scoped query helpers returning plain dicts."""
