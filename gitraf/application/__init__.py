"""Application layer wiring the gateway together."""
