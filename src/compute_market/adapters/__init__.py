"""Adapters connecting the marketplace core to transports and collaborators."""
