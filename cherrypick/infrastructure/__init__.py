"""
Cross-cutting infrastructure: logging, error taxonomy and retries.
"""
