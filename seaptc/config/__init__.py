from .settings import Settings, get_bool_env, get_settings, resolve_database_url
