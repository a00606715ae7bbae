"""Services for the agenda service."""
