"""Configuration for cachefs."""
