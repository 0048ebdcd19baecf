"""Application package for the HandRest cleaning-service booking backend.

This package exposes the service, repository and model modules used by
the FastAPI application. Customer-facing catalog and booking endpoints
live next to the administrative role-management endpoints; individual
modules contain the concrete implementations and documentation.
"""
