"""Article parsing, linting and collection services."""
