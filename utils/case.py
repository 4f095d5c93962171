"""
snake_case -> camelCase conversion for API responses.
Storage and services use snake_case; request bodies are parsed by pydantic aliases.
"""
from datetime import date, datetime
from typing import Any

from pydantic.alias_generators import to_camel


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively convert dict keys to camelCase; datetimes become ISO strings."""
    if isinstance(obj, dict):
        return {to_camel(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return obj
