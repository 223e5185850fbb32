"""Event listener and background task cogs."""
