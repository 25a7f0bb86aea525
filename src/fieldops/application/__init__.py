"""Application layer: services, event dispatch and notification handlers."""
