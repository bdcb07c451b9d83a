"""
Classification Bounded Context
===============================

Turns carrier update text into an ``Issue``:
- Domain: Issue entity, ordered rule table, location resolution
- Application: rule-based and model-assisted classifier strategies
- Interfaces: debug classification route
"""
