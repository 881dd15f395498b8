"""Domain layer: pure business logic, no framework imports."""
