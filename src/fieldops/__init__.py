"""Order management and field telemetry backend with a domain-event pipeline."""

__version__ = "0.1.0"
