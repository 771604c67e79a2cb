"""Configuration — xwalkify.yml settings."""
