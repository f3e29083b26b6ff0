"""Remote backend implementations.

Each subpackage provides an ApiClient for one flavour of the remote API and
registers a factory with ClientRegistry when imported.
"""

# Backend modules are imported by ClientRegistry.discover_platforms()
