import copy
import yaml
from typing import Dict, Any, Optional, Tuple

DEFAULT_CONFIG: Dict[str, Any] = {
    'proxy': {
        'listen': ':8080',
        'timeout': 30,
        'user_agent': '',
    },
    'kubernetes': {
        'kubeconfig': None,
        'namespace': 'default',
        'user_agent': 'instance-proxy',
        'verify_namespace': True,
    },
    'discovery': {
        'strategy': 'deployment_name',
        'timeout': 5,
        'page_size': 500,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}

CONFIG: Dict[str, Any] = {}

def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlays override on a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def load_config(path: str = 'config.yaml') -> None:
    """Loads configuration from a YAML file on top of the defaults."""
    global CONFIG
    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            print(f"Error: Configuration file '{path}' must contain a mapping, using defaults.")
            loaded = {}
    except FileNotFoundError:
        print(f"Error: Configuration file '{path}' not found, using defaults.")
        loaded = {}
    except yaml.YAMLError as e:
        print(f"Error parsing configuration file '{path}': {e}")
        loaded = {}
    CONFIG = _merge(DEFAULT_CONFIG, loaded)

def apply_overrides(overrides: Dict[str, Dict[str, Any]]) -> None:
    """Overlays values given on the command line. None values are ignored."""
    global CONFIG
    cleaned = {
        section: {k: v for k, v in values.items() if v is not None}
        for section, values in overrides.items()
    }
    CONFIG = _merge(get_config(), cleaned)

def get_config() -> Dict[str, Any]:
    """Returns the loaded configuration."""
    if not CONFIG:
        load_config() # Load if not already loaded
    return CONFIG

def parse_listen_address(listen: str) -> Tuple[str, int]:
    """Splits a host:port listen address; an empty host means all interfaces."""
    host, sep, port = str(listen).rpartition(':')
    if not sep:
        raise ValueError(f"Invalid listen address '{listen}', expected host:port")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in listen address '{listen}'")
    return host.strip('[]') or '0.0.0.0', port_number

def get_namespace(config: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Returns the configured namespace, or None to search all namespaces."""
    config = config if config is not None else get_config()
    return config.get('kubernetes', {}).get('namespace') or None
