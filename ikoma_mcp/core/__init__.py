"""Cross-cutting utilities shared by the gateway core and the transports."""
