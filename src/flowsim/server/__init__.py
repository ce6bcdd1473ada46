"""
FastAPI surface for the flow simulator.
"""

from .app import create_app

__all__ = ["create_app"]
