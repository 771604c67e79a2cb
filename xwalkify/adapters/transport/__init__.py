"""Transport adapters — fetch and unpack remote archives."""
