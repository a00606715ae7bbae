"""Routers for the agenda service."""
