"""Discord cogs: slash commands and event listeners."""
