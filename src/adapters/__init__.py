"""Adapters layer for Case-Weaver.

This module contains input/output adapters that interface with external systems.
Adapters implement Port interfaces defined in the domain layer: row sources
read exported tables, writers persist finished bundles and validators check
serialized records.
"""
