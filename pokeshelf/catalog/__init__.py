from pokeshelf.catalog.client import CatalogClient, CatalogFacets, build_search_query

__all__ = ["CatalogClient", "CatalogFacets", "build_search_query"]
