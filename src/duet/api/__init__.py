"""HTTP API for the Duet service."""
