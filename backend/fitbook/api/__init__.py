"""API layer: FastAPI dependencies shared by the routers."""
