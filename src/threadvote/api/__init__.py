"""HTTP API for threadvote."""
