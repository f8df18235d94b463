"""Application layer - services and ports."""
