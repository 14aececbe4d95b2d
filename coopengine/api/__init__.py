"""
Cooperation Engine REST API module.

Provides the JSON endpoints consumed by the dashboard.
"""

from .app import create_app

__all__ = ["create_app"]
