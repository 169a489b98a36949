"""
API package for mediadedup.

Provides the Flask blueprint exposing scan control and results as JSON.
"""

from __future__ import annotations

from .routes import api, SERVICE_KEY

__all__ = ['api', 'SERVICE_KEY']
