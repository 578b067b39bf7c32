"""
Domain layer for email forwarding business logic.

This layer contains:
- Data models (type-safe structures)
- Address routing (who a message is forwarded to)
- Message transformation (forwarding banner, outbound options)
- Forwarding pipeline (explicit success/failure results)
"""
