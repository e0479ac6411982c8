"""Request pipeline internals: ASGI handling, negotiation, sending, errors."""
