"""Core pagination engine: sorting, cursors, pagers, settings and errors."""
