"""REST API for the device session."""
