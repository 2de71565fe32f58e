"""HTTP API: FastAPI app factory, routes and lifespan wiring."""
