"""Local library catalog: a server-rendered FastAPI application."""
