"""
asgi.py -- Application assembly for BlogAPI.

The only place get_settings() is resolved for production. Every component
below it receives its configuration through create_app().

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
