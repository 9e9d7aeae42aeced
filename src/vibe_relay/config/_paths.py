"""Config and dotenv search path helpers."""

import os
from pathlib import Path
from typing import List


def _default_config_search_paths() -> List[Path]:
    """Return the standard config file search paths (lowest to highest priority).

    1. XDG config (~/.config/vibe-relay/config.toml)
    2. User home config (~/.vibe-relay.toml)
    3. Project dotfile config (./.vibe-relay.toml)
    4. Project config (./vibe-relay.toml)
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return [
        Path(xdg_config_home) / "vibe-relay" / "config.toml",
        Path.home() / ".vibe-relay.toml",
        Path(".vibe-relay.toml"),
        Path("vibe-relay.toml"),
    ]


def _default_env_file_paths() -> List[Path]:
    """Return .env files to load, highest priority first.

    python-dotenv never overrides a variable that is already set, so the first
    file defining a key wins.
    """
    return [Path(".env"), Path.home() / ".vibe-relay" / ".env"]
