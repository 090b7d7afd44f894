# backend/navsync/routers/__init__.py
"""
API routers for the Fund NAV Sync service.

Each router handles a specific domain:
- sync: Scheduled NAV sync control (trigger, status, start/stop)
- funds: On-demand NAV fetch, preview and manual entry
"""

from navsync.routers.funds import router as funds_router
from navsync.routers.sync import router as sync_router

__all__ = [
    "funds_router",
    "sync_router",
]
