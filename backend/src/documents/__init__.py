"""Documents module - persistence, service and API for the document lifecycle."""
