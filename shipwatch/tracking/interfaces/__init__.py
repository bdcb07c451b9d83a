"""
Tracking Interfaces Layer
==========================
"""

from shipwatch.tracking.interfaces.controllers import debug_router, router

__all__ = ["router", "debug_router"]
