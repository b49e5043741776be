"""Authentication and authorization.

Learn: Staff authenticate with a bearer JWT carrying their role. Route
handlers gate mutations with require_role(); WebSocket clients may pass
the same token as ?token= to start with a known identity.
"""
