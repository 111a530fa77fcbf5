import os


def _read_env(name, default):
    value = os.environ.get(name, default)
    if value is None:
        value = default
    value = value.strip()
    if value.endswith(';'):
        value = value[:-1].rstrip()
    return value


def parse_bool_env(name, default='0'):
    """Return True when the environment variable equals '1', ignoring trailing semicolons."""
    return _read_env(name, default) == '1'


def parse_int_env(name, default=None):
    """Return the integer value of the environment variable, or default when unset or blank."""
    value = os.environ.get(name)
    if value is None:
        return default
    value = _read_env(name, '')
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}") from None
