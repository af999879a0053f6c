"""Application layer: ports and workflow services."""
