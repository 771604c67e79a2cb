"""Persistence — run ledger."""
