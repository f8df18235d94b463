"""Domain services - pure geometry and mask operations."""
