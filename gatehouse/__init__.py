# (c) Copyright Datacraft, 2026
"""gatehouse: hybrid RBAC/ABAC authorization decision engine."""
__version__ = "0.1.0"
