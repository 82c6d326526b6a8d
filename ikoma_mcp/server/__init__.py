"""HTTP/REST transport (FastAPI)."""
