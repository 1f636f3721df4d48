"""Adapters between the clip engine IR and standalone libraries."""
