"""Conference registrations service."""
