"""
Configuration manager for client settings and the auth token.

Stores encrypted configuration in ~/.zanai/config/. Environment variables
take precedence over stored values.
"""

import json
import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from rich.console import Console
from rich.table import Table

console = Console()

CONFIG_DIR_ENV = "ZANAI_CONFIG_DIR"

# Settings the client understands
KNOWN_SETTINGS = {
    "ZANAI_API_URL": "Reply service base URL",
    "ZANAI_TIMEOUT": "Send timeout in seconds",
    "ZANAI_TOKEN": "Auth token from the last login",
}

# Never printed in full
SECRET_SETTINGS = {"ZANAI_TOKEN"}


def default_config_dir() -> Path:
    """Config directory, honouring ZANAI_CONFIG_DIR."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".zanai" / "config"


class ConfigManager:
    """
    Manages the client's persisted settings.

    Directory structure:
        ~/.zanai/config/.key     # Encryption key
        ~/.zanai/config/keys.enc # Encrypted settings
    """

    def __init__(self, base_dir: Path | None = None):
        """
        Initialize the config manager.

        Args:
            base_dir: Base directory for config storage.
                      Defaults to ~/.zanai/config/
        """
        if base_dir is None:
            base_dir = default_config_dir()

        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._fernet = self._get_fernet()
        self._cache: dict[str, str] | None = None

    def _get_fernet(self) -> Fernet:
        """Get or create the encryption key."""
        key_file = self.base_dir / ".key"

        if key_file.exists():
            key = key_file.read_bytes()
        else:
            key = Fernet.generate_key()
            key_file.write_bytes(key)
            try:
                key_file.chmod(0o600)
            except OSError:
                pass

        return Fernet(key)

    def _keys_path(self) -> Path:
        return self.base_dir / "keys.enc"

    def _load_keys(self) -> dict[str, str]:
        """Load and decrypt stored settings."""
        if self._cache is not None:
            return self._cache

        path = self._keys_path()
        if not path.exists():
            self._cache = {}
            return {}

        try:
            decrypted = self._fernet.decrypt(path.read_bytes())
            keys = json.loads(decrypted)
            self._cache = keys
            return keys
        except (InvalidToken, json.JSONDecodeError):
            self._cache = {}
            return {}

    def _save_keys(self, keys: dict[str, str]) -> None:
        """Encrypt and save settings."""
        encrypted = self._fernet.encrypt(json.dumps(keys).encode())
        path = self._keys_path()
        path.write_bytes(encrypted)
        try:
            path.chmod(0o600)
        except OSError:
            pass
        self._cache = keys

    def get(self, name: str) -> str | None:
        """
        Get a config value.

        Checks environment first, then stored config.
        """
        if name in os.environ:
            return os.environ[name]

        return self._load_keys().get(name)

    def set(self, name: str, value: str) -> None:
        keys = dict(self._load_keys())
        keys[name] = value
        self._save_keys(keys)

    def delete(self, name: str) -> bool:
        """
        Delete a stored value.

        Returns:
            True if deleted, False if not found
        """
        keys = dict(self._load_keys())
        if name in keys:
            del keys[name]
            self._save_keys(keys)
            return True
        return False

    def list_keys(self) -> list[str]:
        """List all stored key names."""
        return list(self._load_keys().keys())

    def show_status(self) -> None:
        """Display stored settings."""
        keys = self._load_keys()

        if not keys:
            console.print("[dim]No settings stored[/dim]")
            console.print()
            console.print("Run [cyan]zanai config set[/cyan] to add one")
            return

        table = Table(title="Stored Settings")
        table.add_column("Key", style="cyan")
        table.add_column("Description")
        table.add_column("Value")

        for name in sorted(keys.keys()):
            description = KNOWN_SETTINGS.get(name, "Custom")
            if name in os.environ and os.environ[name] != keys[name]:
                value = "[yellow]env override[/yellow]"
            elif name in SECRET_SETTINGS:
                value = "[green]stored[/green]"
            else:
                value = keys[name]
            table.add_row(name, description, value)

        console.print(table)
        console.print()
        console.print(f"[dim]Config location: {self.base_dir}[/dim]")


# Global config manager instance
_config_manager: ConfigManager | None = None


def get_config_manager() -> ConfigManager:
    """Get the global config manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def reset_config_manager() -> None:
    """Drop the cached global instance (the config dir may have changed)."""
    global _config_manager
    _config_manager = None
