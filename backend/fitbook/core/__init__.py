"""Configuration, constants and domain exceptions."""
