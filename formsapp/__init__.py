"""
Backend package for the forms API.

This package provides a FastAPI application for user signup/login and
form creation/listing, with database and rate-limit backends that can be
swapped for in-memory implementations in development and tests.
"""
