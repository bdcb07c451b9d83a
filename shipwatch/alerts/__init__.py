"""
Alerts Bounded Context
=======================

Delivery of shipment alerts:
- Domain: chat message and customer e-mail composition, customer-action patterns
- Application: notification router and collaborator interfaces
- Infrastructure: Slack Web API, SMTP and HubSpot contact search
"""
