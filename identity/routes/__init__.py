"""Request routing for the identity service."""
