"""Agent configuration, OakestraJob resources, network webhook and translation table for Oakestra on Kubernetes."""

__version__ = "0.1.0"