"""Infrastructure: logging and metrics."""
