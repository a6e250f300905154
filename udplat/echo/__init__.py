"""UDP echo responder."""
