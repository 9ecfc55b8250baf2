"""
UniFi controller API endpoint definitions.

Paths are relative to the controller base URL; ``{site}`` is the short site
name (``default`` on single-site controllers).
"""

API_ENDPOINTS = {
    'login': '/api/login',
    'logout': '/api/logout',
    'sites': '/api/self/sites',
    'devices': '/api/s/{site}/stat/device',
}

# Raw controller JSON that --dumpjson can print
DUMPABLE = ('devices', 'sites')


def endpoint(name: str, **params) -> str:
    """Return the path for a named endpoint with its parameters filled in."""
    try:
        template = API_ENDPOINTS[name]
    except KeyError:
        raise ValueError(f"Unknown controller endpoint: {name}") from None
    return template.format(**params)
