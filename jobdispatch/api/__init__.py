"""
API Module - HTTP endpoints for the background job service.

This module is responsible for:
- Accepting job dispatch requests
- Serving request status snapshots
- Listing jobs across queues for the operator dashboard
"""

from jobdispatch.api.routes import create_app

__all__ = ['create_app']
