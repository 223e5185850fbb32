"""Table-level CRUD used by the services."""
