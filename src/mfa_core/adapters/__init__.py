"""Storage, locking and delivery adapters."""
