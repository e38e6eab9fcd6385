"""Password hashing and JWT bearer authentication."""
