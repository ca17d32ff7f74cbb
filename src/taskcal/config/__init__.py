from .app_config import (
    AppConfig,
    get_env_bool_setting,
    get_env_float_setting,
    get_env_int_setting,
    get_env_setting,
)

__all__ = [
    "AppConfig",
    "get_env_setting",
    "get_env_int_setting",
    "get_env_float_setting",
    "get_env_bool_setting",
]
