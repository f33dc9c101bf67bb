"""Core selection and session logic (no I/O)."""
