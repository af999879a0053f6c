"""Infrastructure layer: stubs, persistence adapters and observability."""
