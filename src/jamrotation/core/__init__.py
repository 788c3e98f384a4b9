"""Domain models, errors, feature flags and session statistics."""
