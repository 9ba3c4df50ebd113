"""
REST API for the churn dashboard.
"""

from .app import create_app

__all__ = ["create_app"]
