"""Protocols the core depends on. Implementations live in infrastructure."""
