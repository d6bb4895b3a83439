"""Inbound request authentication — HMAC request signing."""
