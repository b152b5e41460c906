"""Command-line tools for inspecting the lane pipeline."""
