import os
import yaml
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from text_finder.core.config_validator import ConfigValidator
from text_finder.core.search.file_scanner import DEFAULT_ENCODING

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinderSettings:
    encoding: str = DEFAULT_ENCODING
    default_excludes: bool = True
    case_sensitive: bool = True
    remote_mode: str = "local"
    remote_command: Tuple[str, ...] = ()
    remote_python: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_config(cls, data: Optional[Dict[str, Any]]) -> "FinderSettings":
        data = data or {}
        finder = data.get("finder", {})
        remote = data.get("remote", {})
        return cls(
            encoding=finder.get("encoding", DEFAULT_ENCODING),
            default_excludes=finder.get("default_excludes", True),
            case_sensitive=finder.get("case_sensitive", True),
            remote_mode=remote.get("mode", "local"),
            remote_command=tuple(remote.get("command", [])),
            remote_python=remote.get("python"),
            log_level=str(data.get("logging", {}).get("level", "INFO")).upper(),
        )


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads configuration from YAML files and environment variables.
    An explicit config_file takes precedence over TEXT_FINDER_CONFIG_FILE.
    Returns a dictionary with configuration and status metadata.
    """
    config_status = {
        "status": "OK",
        "error": None,
        "env": get_env(),
        "config_path": None,
        "data": {}
    }

    # --- 1. Read Overrides from ENV ---
    env_override_file = config_file or os.environ.get("TEXT_FINDER_CONFIG_FILE")
    env_override_dir = os.environ.get("TEXT_FINDER_CONFIG_DIR")
    env = config_status["env"]

    # --- 2. Determine Config Directory and Files ---
    if env_override_file:
        config_path = Path(env_override_file)
        config_dir = config_path.parent
        files_to_load = [config_path]
        config_status["config_path"] = str(config_path)
        config_status["source"] = "ENV_FILE (TEXT_FINDER_CONFIG_FILE)"
    elif env_override_dir:
        config_dir = Path(env_override_dir)
        files_to_load = [
            config_dir / "general.yaml",
            config_dir / f"{env.lower()}.yaml"
        ]
        config_status["source"] = "ENV_DIR (TEXT_FINDER_CONFIG_DIR)"
    else:
        project_root = Path(__file__).parent.parent.parent
        config_dir = project_root / "config"
        files_to_load = [
            config_dir / "general.yaml",
            config_dir / f"{env.lower()}.yaml"
        ]
        config_status["source"] = "DEFAULT (repo/site-packages)"

    # --- 3. Load Configs ---
    loaded_config = {}
    files_found = 0

    try:
        for file_path in files_to_load:
            if file_path.exists():
                files_found += 1
                if not env_override_file:
                    config_status["config_path"] = str(file_path)

                with open(file_path, "r", encoding="utf-8") as f:
                    document = yaml.safe_load(f) or {}
                if not isinstance(document, dict):
                    config_status["status"] = "ERROR"
                    config_status["error"] = f"{file_path}: top level must be a mapping"
                    return config_status
                loaded_config.update(document)
    except (OSError, yaml.YAMLError) as e:
        config_status["status"] = "ERROR"
        config_status["error"] = str(e)
        return config_status

    if files_found == 0:
        if env_override_file:
            config_status["status"] = "ERROR"
            config_status["error"] = f"Config file not found: {env_override_file}"
            return config_status
        logger.warning(f"No config files found in {config_dir} (tried: {[str(f) for f in files_to_load]}), using built-in defaults")
        config_status["source"] = "BUILTIN DEFAULTS"
        return config_status

    # --- 3b. Backward Compatibility ---
    # Flat 'encoding' / 'default_excludes' belong under 'finder'.
    # An explicit finder.* value wins.
    for legacy_key in ("encoding", "default_excludes"):
        if legacy_key in loaded_config:
            val = loaded_config.pop(legacy_key)
            finder = loaded_config.setdefault("finder", {})
            if isinstance(finder, dict) and legacy_key not in finder:
                finder[legacy_key] = val
                logger.warning(f"DEPRECATED: Top-level '{legacy_key}' found. Mapped to 'finder.{legacy_key}'.")
            else:
                logger.info(f"Ignoring top-level '{legacy_key}' because 'finder.{legacy_key}' is set.")

    # --- 3c. Validation ---
    validation_errors = ConfigValidator.validate(loaded_config)
    config_status["data"] = loaded_config
    if validation_errors:
        config_status["status"] = "ERROR"
        config_status["error"] = "Invalid Configuration:\n" + "\n".join(validation_errors)
        return config_status

    remote = loaded_config.get("remote", {})
    logger.info(f"Config Loaded: remote.mode={remote.get('mode', 'local')}, source={config_status['source']}")
    return config_status


def get_env() -> str:
    """
    Detects the current environment.
    Checks TEXT_FINDER_ENV, defaults to DEV.
    """
    return os.environ.get("TEXT_FINDER_ENV", "DEV").upper()
