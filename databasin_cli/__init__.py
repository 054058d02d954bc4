"""
DataBasin CLI - Three-layer architecture for the DataBasin API.

Layers:
- core: Types, config, auth and the async HTTP client
- sdk: High-level DataBasinClient with per-resource operations
- cli: Opinionated command-line interface
"""

from databasin_cli.sdk import DataBasinClient

__version__ = "0.1.0"
__all__ = ["DataBasinClient"]
