"""Shell adapters — run external commands."""
