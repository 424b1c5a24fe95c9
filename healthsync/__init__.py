"""HealthSync: platform health-store bridge, aggregation and step sync."""

__version__ = "0.1.0"
