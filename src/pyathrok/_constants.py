"""Internal constants shared across the library."""

#: Prefix applied to every store name to form its persistence key.
KEY_LABEL = "@athrok/key:"

#: Fixed key under which the registry config record ``{"keys": [...]}`` lives.
CONFIG_LABEL = "@athrok/config"

#: Default debounce window for persisted writes, in seconds.
DEFAULT_DEBOUNCE_TIME: float = 0.1


def persistence_key(store_name: str) -> str:
    """Return the storage key used for *store_name*."""
    return f"{KEY_LABEL}{store_name}"


def is_persistence_key(key: str) -> bool:
    """Return ``True`` when *key* carries the persistence key prefix."""
    return key.startswith(KEY_LABEL)
