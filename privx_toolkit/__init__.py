"""PrivX vault adapter for a secret-management control plane."""

__version__ = "0.1.0"
