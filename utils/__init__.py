"""Input helpers shared by the services."""
