"""
asgi.py -- ASGI entry point for Courtside.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Kept separate from api/main.py so process managers and the CLI point at one
stable import path while api/ stays free to reorganise its modules.
"""

from api.main import app

__all__ = ["app"]
