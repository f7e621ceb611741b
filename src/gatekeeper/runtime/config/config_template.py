"""Configuration template substitution utilities."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.gatekeeper.runtime.config.config_data import ConfigData

MIN_PRODUCTION_SECRET_LENGTH = 32


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """
    def replacer(match):
        var_expr = match.group(1)

        # ${VAR:-default}
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)

        # ${VAR:?message}
        elif ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name}: {error_msg}")
            return value

        # ${VAR}
        else:
            var_name = var_expr
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name} not set")
            return value

    pattern = re.compile(r'\$\{([^}]+)\}')
    # full-line YAML comments are left as written
    return "".join(
        line if line.lstrip().startswith("#") else pattern.sub(replacer, line)
        for line in text.splitlines(keepends=True)
    )


def apply_environment_overrides(env_mode: str) -> None:
    """Promote ``<ENV>_``-prefixed variables to their unprefixed names.

    ``PRODUCTION_JWT_SIGNING_SECRET`` becomes ``JWT_SIGNING_SECRET`` when the
    application runs in production.
    """
    prefix = f"{env_mode.upper()}_"
    env_variables = [var for var in os.environ if var.startswith(prefix)]
    logger.info(f"Applying environment-specific overrides: {env_variables}")

    for var_name in env_variables:
        new_var_name = var_name[len(prefix):]
        os.environ[new_var_name] = os.environ[var_name]
        logger.debug(f"Set environment variable {new_var_name} from {var_name}")


def parse_config(content: str) -> ConfigData:
    """Substitute variables in ``content`` and validate it as ``ConfigData``."""
    substituted_content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(substituted_content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    try:
        # Extract the 'config' section from the YAML structure
        config_data = loaded.get('config', {})
        config = ConfigData(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    # Fallback accounts never survive outside development
    if config.fallback.enabled and not config.app.is_development:
        logger.warning(
            "Ignoring fallback accounts in '{}' environment", config.app.environment
        )
        config.fallback.enabled = False
        config.fallback.users = []

    if config.app.environment == "production":
        secret = config.jwt.signing_secret or ""
        if len(secret) < MIN_PRODUCTION_SECRET_LENGTH or secret.startswith("dev-only"):
            raise ValueError("jwt.signing_secret must be set to a strong secret in production")

    return config


def load_templated_yaml(file_path: Path) -> ConfigData:
    """
    Load a YAML file with environment variable substitution.

    Args:
        file_path: Path to the YAML file

    Returns:
        Parsed YAML with environment variables substituted

    Raises:
        ValueError: If required environment variables are missing
        FileNotFoundError: If the YAML file doesn't exist
    """
    with open(file_path) as f:
        content = f.read()

    env_mode = os.getenv("APP_ENVIRONMENT", "development")
    logger.info(f"Loading configuration for environment: {env_mode}")
    apply_environment_overrides(env_mode)

    return parse_config(content)
