# Environment-backed configuration.
