"""FastAPI dependencies package."""
