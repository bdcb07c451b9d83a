"""
Shared Infrastructure Adapters
==============================

Clients used by more than one bounded context: board API and LLM providers.
"""
