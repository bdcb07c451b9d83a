"""
Tracking Bounded Context
=========================

Board events and the temporal state behind them:
- Domain: tracked entities, tracker records, board configuration
- Application: state stores, staleness and ambiguous-status trackers,
  duplicate suppression, the shipment monitor pipeline
- Infrastructure: YAML board config with hot reload, sweep scheduler
- Interfaces: monday.com webhook and state inspection routes
"""
