"""
Discord UI components for Boostrole.

- **embeds.py**: Embed builders with the bot's fixed colour scheme.

- **leaderboard_ui.py**: Paged booster leaderboard with navigation, refresh
  and close buttons.

- **settings_ui.py**: Admin settings panel for the log channel, recent
  activity and the list of custom roles.

- **edit_role_ui.py**: Modal used by /edit-role to change a role's name,
  colour and icon.
"""
