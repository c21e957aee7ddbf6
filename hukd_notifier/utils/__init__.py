"""
Shared utilities: structured logging and error tracking.
"""
