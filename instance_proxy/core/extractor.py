import re
from instance_proxy.core.errors import InvalidPathFormat

INSTANCE_PATH_PATTERN = re.compile(r'^/instance/([^/]+)(/.*)?$')

def extract_identifier(path: str) -> str:
    """Returns the instance identifier from a path shaped like /instance/<id>/<rest>."""
    match = INSTANCE_PATH_PATTERN.match(path)
    if not match:
        raise InvalidPathFormat(path)
    return match.group(1)

def strip_instance_prefix(path: str, identifier: str) -> str:
    """Removes the /instance/<id> prefix, falling back to the root path."""
    prefix = f"/instance/{identifier}"
    new_path = path[len(prefix):] if path.startswith(prefix) else path
    return new_path or '/'
