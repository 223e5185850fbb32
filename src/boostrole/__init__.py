"""
Boostrole - Discord bot for booster custom roles and timed test roles

Boostrole rewards server boosters with a role of their own and lets
administrators hand out short-lived test roles so members can preview one.

Core Components:

- **Expiry**: Per-user cooldowns and keyed one-shot tasks that undo an action
  after a delay (test role removal), owned by a single coordinator
- **Role Management**: Creation, editing and cleanup of custom and test roles,
  with ownership tracked in SQLite
- **Activity Log**: Per-guild history of role and boost events, mirrored to a
  configurable log channel
- **Commands**: /test-custom-role, /edit-role, /boost-leaderboard and /settings

Usage:
    from boostrole.main import main
    main()
"""
