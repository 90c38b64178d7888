"""
Service layer for the Service Hub backend.

This package holds identity and admin policy logic, vehicle
reconciliation and the service request lifecycle. Routes call into these
modules; nothing here depends on FastAPI.
"""
