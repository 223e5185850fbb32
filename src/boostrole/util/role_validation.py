"""
Validation of user-supplied role names, colours and icons.

Every validator either returns the cleaned value or raises
:class:`RoleValidationError` with a message that can be shown to the user
as-is.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

import discord

DEFAULT_MAX_NAME_LENGTH = 32
INPUT_MAX_LENGTH = 100

ALLOWED_ICON_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg"})

BANNED_WORDS = ("admin", "mod", "moderator", "owner", "staff")

DANGEROUS_PERMISSIONS = (
    "administrator",
    "kick_members",
    "ban_members",
    "manage_channels",
    "manage_guild",
    "manage_webhooks",
    "manage_roles",
)

_UNSAFE_NAME_CHARS = re.compile(r"[^\w\s\[\]\-]")
_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
_BANNED_PATTERN = re.compile("|".join(BANNED_WORDS), re.IGNORECASE)


class RoleValidationError(ValueError):
    """Raised when user input for a role is rejected."""


def sanitize_input(value: object, max_length: int = INPUT_MAX_LENGTH) -> str:
    """Drop angle brackets, trim and truncate. Non-strings become ``""``."""
    if not isinstance(value, str):
        return ""
    return value.replace("<", "").replace(">", "").strip()[:max_length]


def validate_role_name(
    name: object,
    max_length: int = DEFAULT_MAX_NAME_LENGTH,
    *,
    check_banned: bool = True,
    reserved_prefixes: Iterable[str] = (),
) -> str:
    """
    Clean a role name and check its length and wording.

    Characters other than letters, digits, whitespace, ``[``, ``]`` and ``-``
    are removed before the checks. Staff words are rejected anywhere in the
    name, case-insensitively. Names generated by the bot from a username
    pass ``check_banned=False``.

    ``reserved_prefixes`` are the prefixes the bot marks its own roles with;
    a user-chosen name may not start with one of them.
    """
    if not isinstance(name, str) or not name:
        raise RoleValidationError("Role name is invalid.")

    cleaned = " ".join(_UNSAFE_NAME_CHARS.sub("", name).split())

    if not cleaned:
        raise RoleValidationError("Role name cannot be empty.")
    if len(cleaned) > max_length:
        raise RoleValidationError(f"Role name cannot be longer than {max_length} characters.")
    if check_banned and _BANNED_PATTERN.search(cleaned):
        raise RoleValidationError("Role name cannot impersonate staff (admin, mod, owner, staff).")
    lowered = cleaned.lower()
    for prefix in reserved_prefixes:
        if prefix and lowered.startswith(prefix.lower()):
            raise RoleValidationError(f"Role name cannot start with {prefix}.")

    return cleaned


def is_valid_hex_color(value: object) -> bool:
    return isinstance(value, str) and bool(_HEX_COLOR.match(value.strip()))


def validate_color(value: object) -> discord.Colour:
    """Parse ``#RGB`` or ``#RRGGBB`` into a :class:`discord.Colour`."""
    if not is_valid_hex_color(value):
        raise RoleValidationError("Invalid colour; use HEX format, for example #FF0000.")

    digits = str(value).strip()[1:]
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return discord.Colour(int(digits, 16))


def validate_icon(
    content_type: Optional[str],
    size: int,
    *,
    min_bytes: int = 1024,
    max_bytes: int = 256_000,
) -> None:
    """Check an icon's MIME type and byte size."""
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type not in ALLOWED_ICON_TYPES:
        raise RoleValidationError("Role icon must be a PNG or JPEG image.")
    if size < min_bytes:
        raise RoleValidationError(f"Role icon must be at least {min_bytes // 1024} KB.")
    if size > max_bytes:
        raise RoleValidationError(f"Role icon must be at most {max_bytes // 1000} KB.")


def validate_icon_attachment(attachment: discord.Attachment, *, min_bytes: int = 1024, max_bytes: int = 256_000) -> None:
    validate_icon(attachment.content_type, attachment.size, min_bytes=min_bytes, max_bytes=max_bytes)


def dangerous_permissions(permissions: discord.Permissions) -> list[str]:
    """Names of the elevated permissions set on ``permissions``."""
    return [name for name in DANGEROUS_PERMISSIONS if getattr(permissions, name, False)]


def has_dangerous_permissions(permissions: discord.Permissions | Iterable[str]) -> bool:
    """
    True when a role would grant moderation or admin powers.

    Accepts either a :class:`discord.Permissions` or an iterable of permission
    names.
    """
    if isinstance(permissions, discord.Permissions):
        return bool(dangerous_permissions(permissions))
    return any(str(name).lower() in DANGEROUS_PERMISSIONS for name in permissions)
