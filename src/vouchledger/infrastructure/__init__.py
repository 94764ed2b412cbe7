"""Infrastructure adapters: persistence, identity provider and content store."""
