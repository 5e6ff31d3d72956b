"""Management API clients for Kontent Restore."""
