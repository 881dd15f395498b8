"""Authentication: JWT tokens and the current-actor dependency."""
