"""Output layer — Rich rendering of ServiceResult for the CLI."""
