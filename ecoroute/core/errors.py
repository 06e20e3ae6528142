# ecoroute/core/errors.py
# -*- coding: utf-8 -*-

"""
Error taxonomy shared by the resolver and the optimizer.

The engine never swallows these; callers (HTTP handlers, scripts) decide how
to present them.

- InvalidCoordinates : latitude/longitude outside valid ranges (raised before I/O)
- InvalidMetric      : negative time/cost/emissions on a plan
- ServiceUnavailable : external distance call still failing after all retries
- ServiceError       : external call answered but the payload is unusable
"""

from __future__ import annotations


class EcoRouteError(Exception):
    """Base class for every error raised by the engine."""
    ...


class InvalidCoordinates(EcoRouteError, ValueError):
    """Raised when a location has lat ∉ [-90, 90] or lon ∉ [-180, 180]."""
    ...


class InvalidMetric(EcoRouteError, ValueError):
    """Raised when a plan carries a negative time, cost or emissions value."""
    ...


class ServiceUnavailable(EcoRouteError):
    """Raised when the distance service keeps timing out after max retries."""
    ...


class ServiceError(EcoRouteError):
    """Raised when the distance service response lacks distance or duration."""
    ...


__all__ = [
      "EcoRouteError"
    , "InvalidCoordinates"
    , "InvalidMetric"
    , "ServiceUnavailable"
    , "ServiceError"
]
