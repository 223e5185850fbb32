"""
Services shared by commands and listeners.

- **activity_log.py**: Fire-and-forget activity logging to SQLite and to the
  guild's log channel.

- **role_manager.py**: Custom and test role lifecycle, built on the expiry
  coordinator for test role removal.
"""
