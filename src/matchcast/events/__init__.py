"""Domain event vocabulary shared by the HTTP write path and the hub."""
