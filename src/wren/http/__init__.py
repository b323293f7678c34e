"""HTTP types — Request, Response, Connection, and their helpers."""
