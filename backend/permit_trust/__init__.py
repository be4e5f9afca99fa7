"""Permit trust and audit service: document numbers, signed permit tokens, scan audit and live events."""
