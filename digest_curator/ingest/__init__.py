"""Candidate item model and item sources."""
