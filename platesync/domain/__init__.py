"""Domain layer: batch and donation models, workflow errors."""
