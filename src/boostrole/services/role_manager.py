"""
Creation, editing and cleanup of the roles the bot hands out.

Custom roles are granted to boosters and live until the boost ends. Test
roles are granted by admins and removed by a task on the shared
:class:`~boostrole.expiry.coordinator.ExpiryCoordinator`. Ownership of both
kinds is tracked in the ``custom_roles`` table so roles can be found again
after a rename.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import discord

from boostrole.configuration.app_configuration import AppConfig, app_config
from boostrole.database.db_connection import ConnectionManager
from boostrole.datatypes.discord_datatypes import GuildID, RoleID, UserID
from boostrole.datatypes.role_datatypes import CustomRoleRecord, LogEvent, RoleKind
from boostrole.expiry.coordinator import ExpiryCoordinator
from boostrole.repositories.custom_role_repo import custom_role_repo
from boostrole.services.activity_log import ActivityLog
from boostrole.ui.embeds import add_duration_field, temporary_role_embed
from boostrole.util.logger import get_logger
from boostrole.util.role_validation import (
    RoleValidationError,
    sanitize_input,
    validate_color,
    validate_icon,
    validate_role_name,
)

logger = get_logger("role_manager")

ICON_FETCH_TIMEOUT = 10


class RoleLimitError(RoleValidationError):
    """Raised when a member already owns the maximum number of custom roles."""


@dataclass(slots=True)
class TemporaryRoleGrant:
    """Result of :meth:`RoleManager.create_test_role`."""

    role: discord.Role
    expires_at: datetime.datetime
    duration_seconds: float
    extended: bool = False


def temporary_role_key(guild_id: Any, member_id: Any) -> str:
    """Scheduler key for a member's test role expiry."""
    return f"{int(guild_id)}:{int(member_id)}:test-role"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RoleManager:
    """
    Service used by the role commands and the boost listener.

    Args:
        connection: Open database connection manager.
        coordinator: Owner of cooldowns and pending expiry tasks.
        activity_log: Destination of ``ROLE_*`` and ``TEST_ROLE_*`` events.
        config: Application configuration; the shared instance by default.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        coordinator: ExpiryCoordinator,
        activity_log: ActivityLog,
        config: AppConfig = app_config,
    ) -> None:
        self._connection = connection
        self.coordinator = coordinator
        self.activity_log = activity_log
        self.config = config

    # ------------------------------------------------------------------
    # Custom roles
    # ------------------------------------------------------------------

    async def create_custom_role(
        self,
        member: discord.Member,
        name: Optional[str] = None,
        color: Optional[str] = None,
        kind: RoleKind = RoleKind.CUSTOM,
    ) -> discord.Role:
        """
        Create a role without permissions for ``member`` and give it to them.

        ``name`` is user-chosen and fully validated; when omitted the role is
        named after the member with the configured prefix.

        Raises:
            RoleLimitError: If the member already owns ``max_roles_per_user`` roles.
            RoleValidationError: If ``name`` or ``color`` is rejected.
        """
        limits = self.config.role_limits
        owned = await self._records_for(member, kind)
        if kind is RoleKind.CUSTOM and len(owned) >= limits.max_roles_per_user:
            raise RoleLimitError(
                f"You can only have {limits.max_roles_per_user} custom role(s)."
            )

        if name is None:
            prefix = self._prefix_for(kind)
            role_name = self._default_name(prefix, member)
        else:
            role_name = validate_role_name(
                sanitize_input(name), limits.max_name_length, reserved_prefixes=self._reserved_prefixes()
            )
        colour = validate_color(color or self._default_color(kind))

        role = await self._create_tracked_role(member, role_name, colour, kind)
        self.activity_log.log(
            LogEvent.ROLE_CREATE,
            {
                "guild_id": member.guild.id,
                "user_id": member.id,
                "role_id": role.id,
                "role_name": role.name,
                "kind": kind.value,
            },
        )
        return role

    async def remove_custom_role(self, member: discord.Member, kind: RoleKind = RoleKind.CUSTOM) -> int:
        """
        Delete the member's roles of ``kind`` and forget them.

        Tracked roles are found by id; untracked roles on the member whose
        name carries the kind's prefix are removed too. Returns how many
        roles were deleted.
        """
        guild = member.guild
        records = await self._records_for(member, kind)
        roles: Dict[int, discord.Role] = {}
        for record in records:
            role = guild.get_role(record.role_id.to_int())
            if role is not None:
                roles[role.id] = role

        prefix = self._prefix_for(kind)
        for role in member.roles:
            if role.name.startswith(prefix):
                roles.setdefault(role.id, role)

        if kind is RoleKind.TEST:
            self.coordinator.cancel(temporary_role_key(guild.id, member.id))

        removed = 0
        for role in roles.values():
            role_name = role.name
            try:
                await role.delete(reason=f"{kind.value} role removed for {member}")
            except discord.NotFound:
                logger.debug("[ROLE MANAGER] Role %s already gone", role.id)
            else:
                removed += 1
                self.activity_log.log(
                    LogEvent.ROLE_DELETE,
                    {
                        "guild_id": guild.id,
                        "user_id": member.id,
                        "role_id": role.id,
                        "role_name": role_name,
                        "kind": kind.value,
                    },
                )

        if records:
            async with self._connection.transaction() as conn:
                for record in records:
                    await custom_role_repo.delete(conn, record.role_id)

        logger.info("[ROLE MANAGER] Removed %d %s role(s) for %s in %s", removed, kind.value, member, guild)
        return removed

    async def owned_role(self, member: discord.Member) -> Optional[discord.Role]:
        """The member's custom role, tracked or prefix-matched, if any."""
        for record in await self._records_for(member, RoleKind.CUSTOM):
            role = member.guild.get_role(record.role_id.to_int())
            if role is not None:
                return role

        prefix = self.config.custom_role.custom_prefix
        return next((role for role in member.roles if role.name.startswith(prefix)), None)

    async def edit_role(
        self,
        role: discord.Role,
        *,
        editor: discord.abc.User,
        name: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[bytes] = None,
    ) -> Dict[str, Any]:
        """
        Apply the non-empty fields to ``role`` and return what changed.

        Raises:
            RoleValidationError: On invalid input, an empty edit, or an icon
                on a guild without the ``ROLE_ICONS`` feature.
        """
        changes: Dict[str, Any] = {}

        if name is not None and name.strip():
            changes["name"] = validate_role_name(
                sanitize_input(name),
                self.config.role_limits.max_name_length,
                reserved_prefixes=self._reserved_prefixes(),
            )
        if color is not None and color.strip():
            changes["colour"] = validate_color(color)
        if icon is not None:
            if "ROLE_ICONS" not in role.guild.features:
                raise RoleValidationError("This server needs boost level 2 to use role icons.")
            changes["icon"] = icon

        if not changes:
            raise RoleValidationError("Nothing to change; fill in at least one field.")

        await role.edit(**changes, reason=f"Custom role edited by {editor}")

        self.activity_log.log(
            LogEvent.ROLE_UPDATE,
            {
                "guild_id": role.guild.id,
                "user_id": editor.id,
                "role_id": role.id,
                "changes": {key: (str(value) if key != "icon" else "updated") for key, value in changes.items()},
            },
        )
        return changes

    async def fetch_icon(self, url: str) -> bytes:
        """
        Download a role icon, enforcing the configured byte limits.

        Raises:
            RoleValidationError: On a bad URL, HTTP error, non-image or bad size.
        """
        url = url.strip()
        if not url.startswith(("http://", "https://")):
            raise RoleValidationError("Icon must be an http(s) image URL.")

        limits = self.config.role_limits
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, timeout=aiohttp.ClientTimeout(total=ICON_FETCH_TIMEOUT)) as resp:
                    if resp.status != 200:
                        raise RoleValidationError(f"Could not download icon (HTTP {resp.status}).")
                    content_type = resp.headers.get("Content-Type")
                    if resp.content_length is not None and resp.content_length > limits.max_icon_bytes:
                        raise RoleValidationError(f"Role icon must be at most {limits.max_icon_bytes // 1000} KB.")
                    data = await resp.content.read(limits.max_icon_bytes + 1)
        except aiohttp.ClientError as exc:
            logger.warning("[ROLE MANAGER] Icon download from %s failed: %s", url, exc)
            raise RoleValidationError("Could not download icon.") from exc

        validate_icon(content_type, len(data), min_bytes=limits.min_icon_bytes, max_bytes=limits.max_icon_bytes)
        return data

    # ------------------------------------------------------------------
    # Test roles
    # ------------------------------------------------------------------

    async def create_test_role(
        self,
        member: discord.Member,
        duration_seconds: float,
        invoker: Optional[discord.abc.User] = None,
    ) -> TemporaryRoleGrant:
        """
        Give ``member`` a test role that is removed after ``duration_seconds``.

        A member who already holds a tracked test role keeps it; the pending
        expiry is replaced, so the test period restarts from now.
        """
        settings = self.config.test_role
        if not settings.min_minutes * 60 <= duration_seconds <= settings.max_minutes * 60:
            raise RoleValidationError(
                f"Duration must be between {settings.min_minutes} and {settings.max_minutes} minutes."
            )

        guild = member.guild
        role: Optional[discord.Role] = None
        for record in await self._records_for(member, RoleKind.TEST):
            role = guild.get_role(record.role_id.to_int())
            if role is not None:
                break
            await self._forget(record.role_id)

        extended = role is not None
        if role is None:
            name = self._default_name(self.config.custom_role.test_prefix, member)
            role = await self._create_tracked_role(member, name, validate_color(settings.color), RoleKind.TEST)
        elif role not in member.roles:
            await member.add_roles(role, reason="Test role re-issued")

        self.coordinator.schedule(
            temporary_role_key(guild.id, member.id),
            duration_seconds,
            partial(self.expire_test_role, guild, member.id, role.id),
            context={"guild_id": guild.id, "user_id": member.id, "role_id": role.id},
        )
        expires_at = _utcnow() + datetime.timedelta(seconds=duration_seconds)

        self.activity_log.log(
            LogEvent.TEST_ROLE_CREATE,
            {
                "guild_id": guild.id,
                "target_id": member.id,
                "user_id": getattr(invoker, "id", None),
                "role_id": role.id,
                "duration_minutes": round(duration_seconds / 60, 2),
                "color": settings.color,
                "extended": extended,
            },
        )
        logger.info(
            "[ROLE MANAGER] Test role %s for %s in %s expires in %ss%s",
            role.id, member, guild, duration_seconds, " (extended)" if extended else "",
        )
        return TemporaryRoleGrant(role=role, expires_at=expires_at, duration_seconds=duration_seconds, extended=extended)

    async def expire_test_role(self, guild: discord.Guild, member_id: int, role_id: int) -> bool:
        """
        Scheduled action: take the test role away and delete it.

        Returns False when the role no longer exists. Other Discord errors
        propagate so the scheduler reports them as an action failure.
        """
        await self._forget(RoleID(role_id))

        role = guild.get_role(role_id)
        if role is None:
            logger.info("[ROLE MANAGER] Test role %s in %s was already deleted", role_id, guild.id)
            return False

        role_name = role.name
        member = guild.get_member(member_id)
        if member is not None and role in member.roles:
            try:
                await member.remove_roles(role, reason="Test role expired")
            except discord.NotFound:
                pass

        try:
            await role.delete(reason="Test role expired")
        except discord.NotFound:
            logger.debug("[ROLE MANAGER] Test role %s vanished before deletion", role_id)

        if member is not None:
            embed = temporary_role_embed(
                "Test Role Expired",
                f"Your test role in **{guild.name}** has ended. Boost the server to get a custom role of your own!",
            )
            try:
                await member.send(embed=embed)
            except discord.HTTPException:
                logger.debug("[ROLE MANAGER] Could not DM %s about the expired test role", member_id)

        self.activity_log.log(
            LogEvent.TEST_ROLE_EXPIRE,
            {"guild_id": guild.id, "user_id": member_id, "role_id": role_id, "role_name": role_name},
        )
        return True

    async def notify_test_role(self, member: discord.Member, grant: TemporaryRoleGrant) -> bool:
        """DM the member about their test role. Returns False when DMs are closed."""
        embed = temporary_role_embed(
            "Test Role Granted",
            f"You received {grant.role.name} in **{member.guild.name}** to preview a custom role.",
        )
        add_duration_field(embed, grant.duration_seconds)
        try:
            await member.send(embed=embed)
        except discord.HTTPException:
            logger.debug("[ROLE MANAGER] Could not DM %s about their test role", member.id)
            return False
        return True

    async def sweep_orphan_test_roles(self, guild: discord.Guild, now: Optional[datetime.datetime] = None) -> int:
        """
        Delete test roles nothing will expire anymore.

        A test role is an orphan when no expiry task is pending for it and it
        is older than ``orphan_grace_seconds``; this happens after a restart,
        since pending tasks are kept in memory only. Roles tracked as custom
        roles are never touched, whatever their name.
        """
        now = now or _utcnow()
        settings = self.config.test_role
        prefix = self.config.custom_role.test_prefix

        async with self._connection.read() as conn:
            tracked = await custom_role_repo.for_guild(conn, GuildID.from_guild(guild))

        records = [record for record in tracked if record.kind is RoleKind.TEST]
        custom_ids = {record.role_id.to_int() for record in tracked if record.kind is not RoleKind.TEST}
        protected = custom_ids | {
            record.role_id.to_int()
            for record in records
            if self.coordinator.is_pending(temporary_role_key(guild.id, record.owner_id.to_int()))
        }

        removed = 0
        for role in list(guild.roles):
            if not role.name.startswith(prefix) or role.id in protected:
                continue
            if (now - role.created_at).total_seconds() < settings.orphan_grace_seconds:
                continue
            try:
                await role.delete(reason="Orphaned test role")
            except discord.NotFound:
                pass
            except discord.HTTPException as exc:
                logger.warning("[ROLE MANAGER] Could not delete orphaned role %s: %s", role.id, exc)
                continue
            removed += 1

        stale = [record.role_id for record in records if record.role_id.to_int() not in protected]
        if stale:
            async with self._connection.transaction() as conn:
                for role_id in stale:
                    await custom_role_repo.delete(conn, role_id)

        if removed:
            logger.info("[ROLE MANAGER] Removed %d orphaned test role(s) in %s", removed, guild)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_custom_roles(self, guild: discord.Guild) -> List[Tuple[discord.Role, CustomRoleRecord]]:
        """Tracked roles that still exist, highest position first."""
        async with self._connection.read() as conn:
            records = await custom_role_repo.for_guild(conn, GuildID.from_guild(guild))

        found = []
        for record in records:
            role = guild.get_role(record.role_id.to_int())
            if role is not None:
                found.append((role, record))
        found.sort(key=lambda pair: pair[0].position, reverse=True)
        return found

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _prefix_for(self, kind: RoleKind) -> str:
        settings = self.config.custom_role
        return settings.test_prefix if kind is RoleKind.TEST else settings.custom_prefix

    def _reserved_prefixes(self) -> Tuple[str, str]:
        settings = self.config.custom_role
        return settings.custom_prefix, settings.test_prefix

    def _default_color(self, kind: RoleKind) -> str:
        return self.config.test_role.color if kind is RoleKind.TEST else self.config.custom_role.color

    def _default_name(self, prefix: str, member: discord.Member) -> str:
        max_length = self.config.role_limits.max_name_length
        raw = f"{prefix} {member.display_name}"[:max_length]
        try:
            return validate_role_name(raw, max_length, check_banned=False)
        except RoleValidationError:
            return prefix[:max_length]

    async def _records_for(self, member: discord.Member, kind: RoleKind) -> List[CustomRoleRecord]:
        async with self._connection.read() as conn:
            return await custom_role_repo.for_owner(
                conn, GuildID.from_guild(member.guild), UserID.from_user(member), kind
            )

    async def _forget(self, role_id: RoleID) -> None:
        async with self._connection.transaction() as conn:
            await custom_role_repo.delete(conn, role_id)

    async def _create_tracked_role(
        self,
        member: discord.Member,
        name: str,
        colour: discord.Colour,
        kind: RoleKind,
    ) -> discord.Role:
        guild = member.guild
        role = await guild.create_role(
            name=name,
            colour=colour,
            permissions=discord.Permissions.none(),
            hoist=False,
            mentionable=False,
            reason=f"{kind.value} role for {member}",
        )

        top_role = guild.me.top_role if guild.me is not None else None
        if top_role is not None and top_role.position > 1:
            try:
                await role.edit(position=top_role.position - 1)
            except discord.HTTPException as exc:
                logger.warning("[ROLE MANAGER] Could not position role %s: %s", role.id, exc)

        try:
            await member.add_roles(role, reason=f"{kind.value} role for {member}")

            async with self._connection.transaction() as conn:
                await custom_role_repo.upsert(
                    conn,
                    CustomRoleRecord(
                        guild_id=GuildID.from_guild(guild),
                        role_id=RoleID.from_object(role),
                        owner_id=UserID.from_user(member),
                        kind=kind,
                    ),
                )
        except Exception:
            logger.warning("[ROLE MANAGER] Granting role %s to %s failed; deleting it", role.id, member)
            try:
                await role.delete(reason=f"Could not grant {kind.value} role to {member}")
            except discord.HTTPException as exc:
                logger.error("[ROLE MANAGER] Could not delete ungranted role %s: %s", role.id, exc)
            raise

        logger.info("[ROLE MANAGER] Created %s role %s (%s) for %s", kind.value, role.name, role.id, member)
        return role
