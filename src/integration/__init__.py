"""Integration layer: MongoDB repositories and DTOs."""
