from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from boostrole.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_COOLDOWNS: Dict[str, float] = {
    "create_role": 300.0,
    "edit_role": 60.0,
    "test_role": 300.0,
    "default": 3.0,
}


@dataclass(frozen=True, slots=True)
class RoleLimits:
    max_roles_per_user: int = 1
    max_name_length: int = 32
    min_icon_bytes: int = 1024
    max_icon_bytes: int = 256_000


@dataclass(frozen=True, slots=True)
class TemporaryRoleSettings:
    default_minutes: int = 2
    min_minutes: int = 1
    max_minutes: int = 60
    color: str = "#007bff"
    orphan_grace_seconds: float = 120.0
    check_interval_seconds: float = 60.0


@dataclass(frozen=True, slots=True)
class CustomRoleSettings:
    color: str = "#f47fff"
    custom_prefix: str = "[Custom]"
    test_prefix: str = "[Test]"


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


class AppConfig:
    """File-lock based accessor around ``./config/app_config.yml``.

    The YAML mapping is cached in memory. Every accessor falls back to the
    built-in default when its key is missing or malformed, so an absent file
    still yields a usable configuration.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the cache and return the new mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached mapping. Treat as read-only."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def timezone(self) -> str:
        """IANA timezone used for timestamps shown to users."""
        return str(self._data.get("timezone") or "Asia/Jakarta")

    @property
    def database_path(self) -> Path:
        value = _section(self._data, "database").get("path") or "./data/boostrole.db"
        return Path(str(value)).resolve()

    @property
    def cooldowns(self) -> Dict[str, float]:
        """Cooldown windows in seconds, keyed by action."""
        merged = dict(DEFAULT_COOLDOWNS)
        for key, value in _section(self._data, "cooldowns").items():
            try:
                merged[str(key)] = float(value)
            except (TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring invalid cooldown %s=%r", key, value)
        return merged

    def cooldown_for(self, action_key: str) -> float:
        """Window for ``action_key``, falling back to the ``default`` window."""
        cooldowns = self.cooldowns
        return cooldowns.get(action_key, cooldowns["default"])

    @property
    def role_limits(self) -> RoleLimits:
        section = _section(self._data, "role_limits")
        defaults = RoleLimits()
        return RoleLimits(
            max_roles_per_user=int(section.get("max_roles_per_user", defaults.max_roles_per_user)),
            max_name_length=int(section.get("max_name_length", defaults.max_name_length)),
            min_icon_bytes=int(section.get("min_icon_bytes", defaults.min_icon_bytes)),
            max_icon_bytes=int(section.get("max_icon_bytes", defaults.max_icon_bytes)),
        )

    @property
    def test_role(self) -> TemporaryRoleSettings:
        section = _section(self._data, "test_role")
        defaults = TemporaryRoleSettings()
        return TemporaryRoleSettings(
            default_minutes=int(section.get("default_minutes", defaults.default_minutes)),
            min_minutes=int(section.get("min_minutes", defaults.min_minutes)),
            max_minutes=int(section.get("max_minutes", defaults.max_minutes)),
            color=str(section.get("color", defaults.color)),
            orphan_grace_seconds=float(section.get("orphan_grace_seconds", defaults.orphan_grace_seconds)),
            check_interval_seconds=float(section.get("check_interval_seconds", defaults.check_interval_seconds)),
        )

    @property
    def custom_role(self) -> CustomRoleSettings:
        section = _section(self._data, "custom_role")
        defaults = CustomRoleSettings()
        return CustomRoleSettings(
            color=str(section.get("color", defaults.color)),
            custom_prefix=str(section.get("custom_prefix", defaults.custom_prefix)),
            test_prefix=str(section.get("test_prefix", defaults.test_prefix)),
        )

    @property
    def cooldown_sweep_interval(self) -> float:
        """Seconds between sweeps of expired cooldown records. Default is 300."""
        sweep = _section(self._data, "cooldown_sweep")
        return float(sweep.get("interval_seconds", 300.0))

    @property
    def leaderboard_page_size(self) -> int:
        return int(_section(self._data, "leaderboard").get("page_size", 10))


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
