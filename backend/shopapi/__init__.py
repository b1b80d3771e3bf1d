"""Application package for the shop REST API.

This package exposes the model, repository, service and schema modules
used by the FastAPI application in `main`. Individual modules contain
the concrete implementations and documentation.
"""
