"""
API package for TwinFinder.

Provides the Flask blueprint that exposes the analysis session as JSON.
"""

from __future__ import annotations

from .routes import api

__all__ = ['api']
