"""ASGI middleware for the FitBook API."""
