"""Core services: catalog, topology, orders, notifications, statistics and system settings."""
