"""Gallery and featured collections."""
