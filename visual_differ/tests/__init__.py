"""Visual Differ test suite."""
