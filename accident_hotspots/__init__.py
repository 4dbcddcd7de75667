"""
Traffic accident hotspot analysis.

Loads geo-tagged accident records and hourly weather, clusters accident
locations with DBSCAN, and explains hourly accident counts per district or
hotspot with one decision tree per group.
"""

__version__ = "0.1.0"
