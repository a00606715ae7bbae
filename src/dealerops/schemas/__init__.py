"""Schemas for the agenda service."""
