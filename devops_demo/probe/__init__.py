"""Standalone health-check probe for container orchestrators."""
