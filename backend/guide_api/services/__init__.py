"""Service layer: readiness state and startup."""

from guide_api.services.state import ServiceState, start_services

__all__ = ["ServiceState", "start_services"]
