"""Clients for external platforms (YouTube Live, Google OAuth)."""
