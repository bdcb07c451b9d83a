"""
Classification Interfaces Layer
================================
"""

from shipwatch.classification.interfaces.controllers import router

__all__ = ["router"]
