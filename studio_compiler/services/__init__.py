"""Service layer: orchestration between the engine and the adapters."""
