"""
Keystone API package.

Provides the FastAPI application for the Keystone auth and billing service.
The application lives in ``api.app``.
"""
