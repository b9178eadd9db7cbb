"""
Serveur MCP de recherche produits (cartes cadeaux, eSIM, recharges).

Outils: search, detail, categories, ping. Les appels réseau passent par ProductCatalogClient.

Ressources: `bitrefill://product-types` et `bitrefill://categories/{type}` (une par type,
plus le modèle correspondant). Prompt: `products_by_country`.
"""
import json
import logging
from typing import Optional

from pydantic import BaseModel, Field

from ....core.constants import JSONRPC_INVALID_REQUEST, PRODUCT_CATEGORIES
from ....core.exceptions import CatalogError, McpRequestError
from ....core.jsonrpc import prompt_message, tool_error, tool_json_result
from ...catalog import ProductCatalogClient
from ..base import BaseServerInstance, PromptArgument

logger = logging.getLogger(__name__)


class SearchArgs(BaseModel):
    query: str = Field(..., description="Search query (e.g., 'Amazon', 'Netflix', 'AT&T' or '*' for all)")
    limit: Optional[int] = Field(None, ge=1, le=100, description="Maximum number of results to return")
    skip: Optional[int] = Field(None, ge=0, description="Number of results to skip (for pagination)")
    category: Optional[str] = Field(None, description="Filter by category (e.g., 'gaming', 'entertainment')")
    country: Optional[str] = Field(None, description="Country code (e.g., 'US', 'IT', 'GB')")
    language: Optional[str] = Field(None, description="Language code for results (e.g., 'en')")


class DetailArgs(BaseModel):
    id: str = Field(..., min_length=1, description="Unique identifier of the product")


def _error_result(message: str):
    return tool_error(json.dumps({"error": message}, ensure_ascii=False, indent=2))


def _to_json(payload) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


POPULAR_PRODUCTS = (
    "Amazon Gift Card",
    "Netflix",
    "Uber",
    "Local Mobile Topup Providers",
    "Steam",
    "PlayStation Store",
)


class ProductSearchServer(BaseServerInstance):
    server_id = "products"
    display_name = "products-server"

    def __init__(self, server_id: Optional[str] = None, catalog: Optional[ProductCatalogClient] = None):
        self.catalog = catalog or ProductCatalogClient()
        super().__init__(server_id)

    def _register_tools(self) -> None:

        @self._tool(
            "search",
            "Search for gift cards, esims, mobile topups and more. It's suggested to use the "
            "`categories` tool before searching for products.",
            SearchArgs,
        )
        async def search(args: SearchArgs):
            try:
                results = await self.catalog.search(**args.model_dump())
            except CatalogError as e:
                logger.warning(f"Recherche catalogue échouée ({args.query!r}): {e}")
                return _error_result(e.message)
            return tool_json_result(results)

        @self._tool("detail", "Get detailed information about a product", DetailArgs)
        async def detail(args: DetailArgs):
            try:
                product = await self.catalog.get_product(args.id)
            except CatalogError as e:
                logger.warning(f"Détail produit {args.id} indisponible: {e}")
                return _error_result(e.message)
            return tool_json_result(product)

        @self._tool(
            "categories",
            "Get the full product type/categories map. Use it before `search` to pick a category.",
        )
        async def categories(args):
            return tool_json_result(PRODUCT_CATEGORIES)

        @self._tool("ping", "Check if the Bitrefill API is available")
        async def ping(args):
            try:
                data = await self.catalog.ping()
            except CatalogError as e:
                logger.warning(f"Ping catalogue échoué: {e}")
                return _error_result(e.message)
            return tool_json_result(data)

    def _register_resources(self) -> None:

        @self._resource(
            "bitrefill://product-types",
            "Product Types",
            "List of available product types on Bitrefill",
        )
        async def product_types(uri: str) -> str:
            return _to_json({"productTypes": list(PRODUCT_CATEGORIES)})

        for product_type in PRODUCT_CATEGORIES:
            self._resource(
                f"bitrefill://categories/{product_type}",
                f"{product_type.capitalize()} Categories",
                f"List of available categories for {product_type} on Bitrefill",
            )(self._read_categories)

        @self._resource_template(
            "bitrefill://categories/{product_type}",
            "Product Type Categories",
            "List of available categories for a product type on Bitrefill",
        )
        async def categories_by_type(uri: str, product_type: str) -> str:
            return await self._read_categories(uri, product_type)

    async def _read_categories(self, uri: str, product_type: Optional[str] = None) -> str:
        if product_type is None:
            product_type = uri.rsplit("/", 1)[-1]
        if product_type not in PRODUCT_CATEGORIES:
            raise McpRequestError(f"Invalid product type: {product_type}", JSONRPC_INVALID_REQUEST)
        return _to_json({"productType": product_type, "categories": PRODUCT_CATEGORIES[product_type]})

    def _register_prompts(self) -> None:

        @self._prompt(
            "products_by_country",
            "List all products available in a specific country",
            (PromptArgument("country", "Country code (e.g., 'US', 'IT', 'GB')"),),
        )
        async def products_by_country(args: dict) -> list:
            country = args.get("country") or "{country}"
            listing = "\n".join(f"{i}. {name}" for i, name in enumerate(POPULAR_PRODUCTS, start=1))
            return [
                prompt_message("user", f"List all products available in {country}"),
                prompt_message("assistant", f"Here are products available in {country}:\n\n{listing}"),
            ]

    async def _on_stop(self) -> None:
        await self.catalog.close()
