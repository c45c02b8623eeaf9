"""
Runtime configuration read from the environment.

Every setting has a default, so nothing needs to be set for local use.
"""

import os

HOST = os.environ.get("FLOWSKETCH_HOST", "127.0.0.1")
PORT = int(os.environ.get("FLOWSKETCH_PORT", "8765"))

# Comma-separated list of origins allowed to call the API from a browser
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "FLOWSKETCH_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]

# Supersampling factor for PNG export
EXPORT_SCALE = float(os.environ.get("FLOWSKETCH_EXPORT_SCALE", "2"))
# Margin around node extents in exported images
EXPORT_PADDING = float(os.environ.get("FLOWSKETCH_EXPORT_PADDING", "40"))
