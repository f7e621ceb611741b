import os
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from src.gatekeeper.runtime.config.config_data import ConfigData
from src.gatekeeper.runtime.config.config_template import load_templated_yaml


@dataclass
class AppContext:
    """Application context containing configuration and other app-wide state."""

    config: ConfigData


def _load_default_config() -> ConfigData:
    config_path = Path(os.getenv("GATEKEEPER_CONFIG", "config.yaml"))
    if not config_path.exists():
        logger.warning("{} not found; using built-in configuration defaults", config_path)
        return ConfigData()
    return load_templated_yaml(config_path)


# Global configuration instance
_default_config = _load_default_config()
_default_context = AppContext(config=_default_config)


# Context variable for application context
_app_context: ContextVar[AppContext] = ContextVar(
    "app_context", default=_default_context
)


def get_context() -> AppContext:
    """Get the current application context.

    Returns:
        AppContext: The current application context containing configuration.
    """
    return _app_context.get()


def set_context(context: AppContext) -> Token[AppContext]:
    """Set the current application context.

    Args:
        context: AppContext instance to set as current.
    """
    return _app_context.set(context)


def _recursive_model_dump_exclude_unset(model: BaseModel) -> dict:
    """Recursively dump a Pydantic model keeping only explicitly set fields.

    If any nested field is explicitly set, the parent field containing that
    nested model is included in full so the merge can descend into it.
    """
    result = {}
    explicitly_set_fields = model.model_fields_set

    for field_name in model.__class__.model_fields:
        field_value = getattr(model, field_name)

        if isinstance(field_value, BaseModel):
            nested_result = _recursive_model_dump_exclude_unset(field_value)
            if nested_result:
                result[field_name] = nested_result
            elif field_name in explicitly_set_fields:
                result[field_name] = field_value.model_dump()
        elif field_name in explicitly_set_fields:
            if isinstance(field_value, list):
                result[field_name] = [
                    v.model_dump() if isinstance(v, BaseModel) else v
                    for v in field_value
                ]
            else:
                result[field_name] = field_value

    return result


def _recursive_dict_merge(base_dict: dict, override_dict: dict) -> dict:
    """Recursively merge two dictionaries, values from ``override_dict`` win."""
    result = base_dict.copy()

    for key, value in override_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _recursive_dict_merge(result[key], value)
        else:
            result[key] = value

    return result


def _merge_configs(base_config: ConfigData, override_config: ConfigData) -> ConfigData:
    """Merge ``override_config`` into ``base_config``.

    Only fields explicitly set on the override participate, so a partial
    override inherits everything else from the base.
    """
    base_dict = base_config.model_dump(exclude={"database": {"password", "connection_string"}})
    override_dict = _recursive_model_dump_exclude_unset(override_config)
    merged_dict = _recursive_dict_merge(base_dict, override_dict)
    return ConfigData.model_validate(merged_dict)


@contextmanager
def with_context(config_override: ConfigData | None = None):
    """Context manager for temporarily overriding the application context.

    The override is merged with the current context, so only the fields set
    on ``config_override`` change.

    Example:
        override = ConfigData(app=AppConfig(environment="production"))
        with with_context(override):
            assert get_config().app.environment == "production"
            # every other section is inherited from the current config
    """
    if config_override is None:
        yield
        return

    current_config = get_context().config

    if isinstance(config_override, ConfigData):
        merged_config = _merge_configs(current_config, config_override)
    else:
        raise ValueError(
            f"config_override must be ConfigData, or None, got {type(config_override)}"
        )

    token = set_context(replace(get_context(), config=merged_config))
    try:
        yield
    finally:
        _app_context.reset(token)


def set_config(config: ConfigData) -> None:
    """Replace the entire current configuration with ``config``."""
    set_context(replace(get_context(), config=config))


def get_config() -> ConfigData:
    """Convenience function to get the current configuration.

    Returns:
        ConfigData: The current configuration from the app context.
    """
    return get_context().config
