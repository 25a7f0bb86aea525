"""Infrastructure adapters: persistence, messaging, external APIs and health checks."""
