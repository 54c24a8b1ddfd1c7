"""Infrastructure layer: adapters for storage, chain, cache and monitoring."""
