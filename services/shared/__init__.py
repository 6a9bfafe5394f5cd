"""
CellScan Shared Services Module.
Common building blocks shared across services.
"""
from .service_base import ServiceBase

__all__ = ["ServiceBase"]
