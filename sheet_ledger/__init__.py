"""Reconcile loosely-structured order, settlement and catalog sheets."""

__version__ = "0.1.0"
