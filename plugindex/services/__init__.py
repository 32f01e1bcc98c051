"""
Service layer for plugindex.

Contains the operations clients use, built on the domain and infra layers:
- CatalogueClient: Plugin database and install catalogues
- ReadmeFetcher: Sanitized READMEs
- FilterEngine: Query filtering
- InstallService: Install snippets and target files
- StoreSession: Loading, browsing and previews for one client

Services are the primary API for commands to use.
"""

from .catalogue_service import CatalogueClient
from .readme_service import ReadmeFetcher
from .filter_service import FilterEngine
from .install_service import InstallPlan, InstallService, PluginFileWriter
from .session import LoadReport, StoreSession

__all__ = [
    'CatalogueClient',
    'ReadmeFetcher',
    'FilterEngine',
    'InstallPlan',
    'InstallService',
    'PluginFileWriter',
    'LoadReport',
    'StoreSession',
]
