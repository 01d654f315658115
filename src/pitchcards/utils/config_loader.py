import json
import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PITCHCARDS_CONFIG"


def find_project_root(markers=(".git", "pyproject.toml", "requirements.txt")) -> Path:
    """
    Walk upwards from the working directory, then from this file's directory,
    to locate a project root marker.
    Returns the Path to the project root directory.
    Raises FileNotFoundError if not found.
    """
    starts = (Path.cwd().resolve(), Path(__file__).resolve().parent)
    for start in starts:
        for parent in (start, *start.parents):
            for marker in markers:
                if (parent / marker).exists():
                    return parent
    raise FileNotFoundError(f"Could not locate project root using markers: {markers}")


def find_config_path(filename: str = "config/config.yaml") -> Path:
    """
    Locate the config file.

    PITCHCARDS_CONFIG wins when set. Otherwise walk upwards from the working
    directory and then from this file's directory, returning the first match.
    Raises FileNotFoundError if not found.
    """
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        path = Path(override).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points at a missing file: {path}")
        return path

    starts = (Path.cwd().resolve(), Path(__file__).resolve())
    for start in starts:
        for parent in (start, *start.parents):
            candidate = parent / filename
            if candidate.is_file():
                return candidate
    raise FileNotFoundError(
        f"Could not locate {filename} in any parent directories")


def _apply_env_overrides(config: dict) -> dict:
    data_root = os.getenv("PITCHCARDS_DATA_ROOT")
    if data_root:
        paths = config.setdefault("paths", {})
        paths["raw"] = str(Path(data_root) / "raw")
    user_agent = os.getenv("PITCHCARDS_USER_AGENT")
    if user_agent:
        config.setdefault("http", {})["user_agent"] = user_agent
    return config


def load_config(filename: str = "config/config.yaml") -> dict:
    """
    Load and parse the YAML or JSON config file from the project root (or nearest parent).

    Values from a .env file (or the process environment) override the file:
    PITCHCARDS_DATA_ROOT moves the raw CSV directory, PITCHCARDS_USER_AGENT
    replaces the HTTP user agent.

    Usage:
        from pitchcards.utils.config_loader import load_config
        config = load_config()
    """
    load_dotenv()
    path = find_config_path(filename)
    logger.debug("Loading config from: %s", path)
    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            config = yaml.safe_load(content)
        elif path.suffix == ".json":
            config = json.loads(content)
        else:
            # attempt YAML first, then JSON
            try:
                config = yaml.safe_load(content)
            except yaml.YAMLError:
                config = json.loads(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise RuntimeError(f"Failed to load config from {path}: {e}") from e

    config = config or {}
    # Force root_path to always be the detected project root
    try:
        config["root_path"] = str(find_project_root())
    except FileNotFoundError as e:
        logger.warning("Could not auto-detect project root: %s", e)
        config["root_path"] = str(path.resolve().parent.parent)
    logger.debug("Forced root_path to project root: %s", config["root_path"])
    return _apply_env_overrides(config)


_REQUIRED = object()


def resolve_path(config: dict, key: str, default=_REQUIRED) -> Path:
    """
    Return paths.<key> from the config, anchored at root_path when relative.

    A missing key raises KeyError unless a default is given; a default of
    None is returned as-is.
    """
    value = config.get("paths", {}).get(key)
    if value is None:
        if default is _REQUIRED:
            raise KeyError(f"Missing paths.{key} in config")
        if default is None:
            return None
        value = default
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = Path(config.get("root_path", ".")) / path
    return path
