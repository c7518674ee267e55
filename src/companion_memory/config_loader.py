# config_loader.py
import os
import re
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from loguru import logger
from pydantic import ValidationError

from .config import EngineConfig

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


def read_yaml(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML configuration file, substituting ``${VAR}`` with environment
    variables. Unknown variables are left as-is.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration data as a dictionary.

    Raises:
        FileNotFoundError: If the configuration file is not found.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    content = Path(config_path).read_text(encoding="utf-8")

    def replacer(match):
        env_var = match.group(1)
        return os.getenv(env_var, match.group(0))

    content = _ENV_PATTERN.sub(replacer, content)

    try:
        return yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.critical(f"Error parsing YAML file: {e}")
        raise e


def _format_validation_error(error: ValidationError) -> str:
    lines = ["Invalid configuration:"]
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        lines.append(f"  - {location}: {err['msg']}")
    return "\n".join(lines)


def load_config(config_path: Union[str, Path, None] = None) -> EngineConfig:
    """
    Load and validate the engine configuration.

    Without a path the defaults are returned.

    Raises:
        ValueError: If the file does not validate.
    """
    if config_path is None:
        return EngineConfig()

    data = read_yaml(config_path)
    try:
        return EngineConfig.model_validate(data)
    except ValidationError as e:
        message = _format_validation_error(e)
        logger.error(message)
        raise ValueError(message) from e
