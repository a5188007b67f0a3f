"""Adapters connecting the core to HTTP frameworks, backends and storage."""
