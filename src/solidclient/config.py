"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the small amount of persistent state and runtime
configuration solidclient needs:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.solidclient/`` on macOS and Windows. See :func:`get_data_dir`.
* **Runtime config** -- :func:`resolve_client_config` merges explicit
  overrides, environment variables, and defaults into a
  :class:`~solidclient.models.ClientConfig`.

File writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a half-written identity
store behind.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from solidclient.exceptions import ConfigError
from solidclient.models import ClientConfig

_APP_NAME = "solidclient"

_ENV_OVERRIDES = {
    "SOLIDCLIENT_TIMEOUT": "timeout",
    "SOLIDCLIENT_VERIFY_SSL": "verify_ssl",
    "SOLIDCLIENT_REDIRECT_URL": "redirect_url",
}
"""Environment variable -> :class:`~solidclient.models.ClientConfig` field."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory (identity store), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/solidclient/`` (default
    ``~/.local/share/solidclient/``).
    On macOS/Windows: ``~/.solidclient/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    When *mode* is given the permissions are applied to the temp file before
    any content is written, so secrets are never world-readable, even
    momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Precedence resolution ---


def resolve_client_config(**overrides: Any) -> ClientConfig:
    """Resolve the client configuration with its precedence chain.

    Precedence (high to low):
        1. Keyword overrides passed by the caller (``None`` values are ignored)
        2. Environment variables (``SOLIDCLIENT_TIMEOUT``,
           ``SOLIDCLIENT_VERIFY_SSL``, ``SOLIDCLIENT_REDIRECT_URL``)
        3. Defaults declared on :class:`~solidclient.models.ClientConfig`

    Returns:
        The effective :class:`~solidclient.models.ClientConfig`.

    Raises:
        ConfigError: If an environment variable or override has a value the
            model cannot accept (e.g. ``SOLIDCLIENT_TIMEOUT=soon``).
    """
    values: dict[str, Any] = {}

    # 2. Environment variables
    for env_var, field_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_var)
        if env_value:
            values[field_name] = env_value

    # 1. Explicit overrides
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid solidclient configuration: {exc}") from exc
