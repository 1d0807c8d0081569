"""HTTP API for the Commons application."""
