"""
Core Module - Shared infrastructure for cross-cutting concerns.

This module provides:
- The process-wide service registry (service lifetimes without singletons)
"""

from .service_registry import ServiceRegistry, services

__all__ = [
    "ServiceRegistry",
    "services",
]
