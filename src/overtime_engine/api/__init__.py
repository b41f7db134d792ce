"""HTTP API for the overtime engine."""
