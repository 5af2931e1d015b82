"""
Cashbox — Observability Module

Logging setup for host applications.
"""

from .logs import JSONFormatter, configure_logging

__all__ = [
    "JSONFormatter",
    "configure_logging",
]
