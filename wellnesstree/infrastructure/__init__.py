"""Infrastructure layer: configuration, logging, persistence and courier clients."""
