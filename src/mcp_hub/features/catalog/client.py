"""
Client HTTP du catalogue produits (API publique Bitrefill).

Fournit ProductCatalogClient pour la recherche (`/omni`) et le détail (`/product/{id}`)
des produits, et la vérification de disponibilité de l'API (`{api_url}/ping`), avec retry
sur les erreurs réseau.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ...core.constants import (
    DEFAULT_CATALOG_API_URL,
    DEFAULT_CATALOG_BASE_URL,
    DEFAULT_CATALOG_TIMEOUT_MS,
    DEFAULT_CATALOG_WEBSITE_URL,
    DEFAULT_SEARCH_LIMIT,
)
from ...core.exceptions import CatalogError

logger = logging.getLogger(__name__)

# Champs recopiés tels quels depuis la réponse `omni`
_PRODUCT_FIELDS = (
    "_priceRange",
    "_ratingValue",
    "_reviewCount",
    "cashbackDisabled",
    "cashbackPercentage",
    "cashbackPercentageFinal",
    "isRanged",
    "range",
)
_PRODUCT_LIST_FIELDS = (
    "billCategories",
    "categories",
    "countries",
    "redemptionMethods",
    "usageMethods",
    "usps",
)
_PRODUCT_STR_FIELDS = ("baseName", "countryCode", "currency", "slug")


class ProductCatalogClient:
    """
    Client du catalogue avec retry intégré.

    Les erreurs réseau (timeout, connexion) sont retentées avec un backoff linéaire;
    une réponse HTTP non 2xx lève immédiatement CatalogError.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CATALOG_BASE_URL,
        website_url: str = DEFAULT_CATALOG_WEBSITE_URL,
        timeout_ms: float = DEFAULT_CATALOG_TIMEOUT_MS,
        default_limit: int = DEFAULT_SEARCH_LIMIT,
        max_retries: int = 3,
        retry_delay_ms: float = 100.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        api_url: str = DEFAULT_CATALOG_API_URL,
    ):
        """
        Initialise le client catalogue.

        Args:
            base_url: URL de base de l'API (sans slash final)
            website_url: URL du site, utilisée pour construire les liens produits
            timeout_ms: Timeout par requête (ms)
            default_limit: Nombre de résultats si `limit` n'est pas fourni
            max_retries: Nombre maximum de tentatives
            retry_delay_ms: Délai initial entre les tentatives (ms)
            transport: Transport httpx alternatif (tests)
            api_url: URL de l'API v2, interrogée par `ping()`
        """
        self.base_url = base_url.rstrip("/")
        self.website_url = website_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.default_limit = default_limit
        self.max_retries = max(1, max_retries)
        self.retry_delay_ms = retry_delay_ms
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_ms / 1000.0, connect=5.0),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                transport=self._transport,
            )
        return self._http_client

    async def close(self):
        """Ferme le client HTTP de manière propre."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        base_url: Optional[str] = None,
    ) -> Any:
        client = await self._get_client()
        url = f"{base_url or self.base_url}{path}"

        for attempt in range(self.max_retries):
            try:
                response = await client.get(url, params=params)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt == self.max_retries - 1:
                    raise CatalogError(
                        f"Catalogue injoignable après {self.max_retries} tentatives: {e}",
                        endpoint=path,
                    ) from e
                backoff_delay = self.retry_delay_ms / 1000.0 * (attempt + 1)
                logger.warning(f"Catalogue: tentative {attempt + 1} échouée ({e}), retry dans {backoff_delay}s")
                await asyncio.sleep(backoff_delay)
                continue

            if response.status_code >= 400:
                raise CatalogError(
                    f"HTTP {response.status_code}: {response.text[:200]}",
                    status_code=response.status_code,
                    endpoint=path,
                )
            try:
                return response.json()
            except ValueError as e:
                raise CatalogError(f"Réponse JSON invalide: {e}", endpoint=path) from e

        raise CatalogError("Aucune tentative effectuée", endpoint=path)

    def build_search_params(
        self,
        query: str,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
        category: Optional[str] = None,
        country: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Dict[str, str]:
        params = {
            "q": query,
            "limit": str(limit or self.default_limit),
            "skip": str(skip or 0),
            "src": "mcp",
            "col": "1",
            "prefcc": "1",
        }
        if category:
            params["category"] = category
        if country:
            params["country"] = country
        if language:
            params["hl"] = language
        return params

    def product_url(self, product: Dict[str, Any], country: Optional[str] = None, language: Optional[str] = None) -> str:
        """Lien `{site}/{pays}/{langue}/{type}/{slug}/` d'un produit."""
        country_code = (product.get("countryCode") or country or "us").lower()
        lang = (language or "en").lower()
        product_type = (product.get("type") or "gift-cards").lower()
        slug = product.get("slug") or product.get("id")
        return f"{self.website_url}/{country_code}/{lang}/{product_type}/{slug}/"

    def _to_result(self, product: Dict[str, Any], country: Optional[str], language: Optional[str]) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": product.get("id"),
            "name": product.get("name"),
            "type": product.get("type") or "",
            "url": self.product_url(product, country, language),
        }
        for key in _PRODUCT_FIELDS:
            if key in product:
                result[key] = product[key]
        for key in _PRODUCT_LIST_FIELDS:
            result[key] = product.get(key) or []
        for key in _PRODUCT_STR_FIELDS:
            result[key] = product.get(key) or ""
        return result

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
        category: Optional[str] = None,
        country: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Recherche des produits.

        Returns:
            {"results": [...]} (liste vide si la réponse ne contient pas de produits)
        """
        params = self.build_search_params(query, limit, skip, category, country, language)
        data = await self._get_json("/omni", params=params)

        products = data.get("products") if isinstance(data, dict) else None
        if not isinstance(products, list):
            return {"results": []}

        return {
            "results": [
                self._to_result(product, country, language)
                for product in products
                if isinstance(product, dict)
            ]
        }

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        data = await self._get_json(f"/product/{product_id}")
        if not isinstance(data, dict):
            raise CatalogError("Réponse produit inattendue", endpoint=f"/product/{product_id}")
        return data

    async def ping(self) -> Dict[str, Any]:
        """Vérifie que l'API répond (`GET {api_url}/ping`)."""
        data = await self._get_json("/ping", base_url=self.api_url)
        if not isinstance(data, dict):
            raise CatalogError("Réponse ping inattendue", endpoint="/ping")
        return data
