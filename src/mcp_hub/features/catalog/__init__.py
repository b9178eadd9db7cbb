"""
Catalog Module - Accès HTTP au catalogue produits.
"""

from .client import ProductCatalogClient

__all__ = ["ProductCatalogClient"]
