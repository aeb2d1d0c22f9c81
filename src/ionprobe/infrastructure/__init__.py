"""Cross-cutting infrastructure: errors, logging and URL helpers."""
