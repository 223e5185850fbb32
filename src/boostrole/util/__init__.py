"""
Utility functions and helpers for Boostrole.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers and per-session log files. Silences Discord and HTTP
  client internals. Uses prompt_toolkit for console output.

- **time_format.py**: Timestamps in the configured timezone, spelled-out and
  coarse durations, and the cooldown wait message.

- **pagination.py**: Page slicing shared by the leaderboard and role list.

- **role_validation.py**: Checks for user-supplied role names, colours and
  icons, plus detection of dangerous permissions.
"""
