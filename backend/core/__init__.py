"""Request-scoped infrastructure: correlation IDs, loguru setup and Sentry."""
