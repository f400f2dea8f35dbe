"""Domain models (Value Objects) shared across the SDK."""
