"""
asgi.py -- Application assembly for the CasinoVizion admin panel.

The JSON API (api/) and the server-rendered admin pages (web/) are independent
layers; this is the only module that imports both.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Admin Pages"])
