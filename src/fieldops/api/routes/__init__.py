"""Route group exports."""

from . import assignments, coordinates, health, routes, zones

__all__ = ["zones", "coordinates", "routes", "assignments", "health"]
