"""techblog content tooling."""
