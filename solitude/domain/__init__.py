"""
Domain layer containing core business logic and domain services.

Submodules:
- presence: Session registry, liveness sweeping and occupancy broadcast.
"""
