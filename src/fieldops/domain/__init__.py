"""Domain layer: entities, events, value objects and business rules."""
