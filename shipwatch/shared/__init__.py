"""
Shared Kernel Module
====================

Shared infrastructure used across the classification, tracking and
alerting modules.

DO NOT add shipment business logic to the shared kernel.
"""

__version__ = "1.0.0"
