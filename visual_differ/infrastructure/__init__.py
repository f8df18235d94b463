"""Infrastructure - plugin discovery."""
