"""Services — the pipeline stages."""
