from typing import Dict, Any, List
import codecs
import logging

logger = logging.getLogger(__name__)

REMOTE_MODES = ("local", "subprocess")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigValidator:
    """
    Validates configuration structure and types.
    Every section is optional; whatever is present must be well formed.
    """

    @staticmethod
    def validate(config: Dict[str, Any]) -> List[str]:
        errors = []

        if not isinstance(config, dict):
            return [f"Configuration root must be a mapping, got {type(config).__name__}"]

        # 1. Finder
        finder = config.get("finder", {})
        if not isinstance(finder, dict):
            errors.append("'finder' must be a dictionary")
        else:
            ConfigValidator._check_bool(finder, "default_excludes", errors)
            ConfigValidator._check_bool(finder, "case_sensitive", errors)
            if "encoding" in finder:
                encoding = finder["encoding"]
                if not isinstance(encoding, str):
                    errors.append("'finder.encoding' must be a string")
                else:
                    try:
                        codecs.lookup(encoding)
                    except LookupError:
                        errors.append(f"Unknown encoding 'finder.encoding': {encoding}")

        # 2. Remote
        remote = config.get("remote", {})
        if not isinstance(remote, dict):
            errors.append("'remote' must be a dictionary")
        else:
            mode = remote.get("mode", "local")
            if mode not in REMOTE_MODES:
                errors.append(f"'remote.mode' must be one of {list(REMOTE_MODES)}, got {mode!r}")
            command = remote.get("command", [])
            if not isinstance(command, list) or not all(isinstance(c, str) for c in command):
                errors.append("'remote.command' must be a list of strings")
            if "python" in remote and not isinstance(remote["python"], str):
                errors.append("'remote.python' must be a string")
            if command and mode != "subprocess":
                errors.append("'remote.command' requires 'remote.mode: subprocess'")

        # 3. Logging
        logging_cfg = config.get("logging", {})
        if not isinstance(logging_cfg, dict):
            errors.append("'logging' must be a dictionary")
        elif "level" in logging_cfg:
            level = logging_cfg["level"]
            if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
                errors.append(f"'logging.level' must be one of {list(LOG_LEVELS)}, got {level!r}")

        if errors:
            logger.error(f"Config Validation Failed: {errors}")
        else:
            logger.debug("Config OK: finder=%s remote=%s", finder, remote)

        return errors

    @staticmethod
    def _check_bool(section: dict, key: str, errors: list):
        if key in section and not isinstance(section[key], bool):
            errors.append(f"Field '{key}' must be boolean, got {type(section[key]).__name__}")
