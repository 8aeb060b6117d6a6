"""
ADU Planner

Geometric constraint engine for evaluating residential parcels for accessory
dwelling unit placement.
"""

__version__ = "0.1.0"
