"""
Shipwatch
=========

Webhook-driven shipment status monitor.
"""

__version__ = "1.0.0"
