"""
Store Compliance Tracker - Core Package

This package contains the compliance scoring and prioritization engine for
retail units in a managed property, plus the data access needed to feed it.
"""

__version__ = "0.1.0"
