"""FastAPI integration for request-handling collaborators."""
