"""Weaviate vector search backend for supermarket products."""

from __future__ import annotations

import asyncio
import logging

from ..errors import OracleError
from ..models import ProductCandidate
from . import ProductSearch

logger = logging.getLogger(__name__)

_RETURN_PROPERTIES = [
    "name",
    "price",
    "amount",
    "standardizedUnit",
    "supermarketName",
]


class WeaviateProductSearch(ProductSearch):
    """Search a Weaviate ``Products`` collection with ``near_text``.

    The client is created in :meth:`open` and released in :meth:`close`;
    the owning application controls that lifecycle.
    """

    def __init__(
        self,
        url: str = "",
        api_key: str = "",
        openai_api_key: str = "",
        collection: str = "Products",
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._openai_api_key = openai_api_key
        self._collection_name = collection
        self._client = None

    async def open(self) -> None:
        if self._client is not None:
            return
        if not self._url or not self._api_key:
            raise OracleError(
                "Weaviate is not configured. "
                "Set search.url/search.api_key or WEAVIATE_URL/WEAVIATE_API_KEY."
            )

        try:
            import weaviate
            from weaviate.classes.init import Auth
        except ImportError:
            raise ImportError(
                "weaviate-client is required: pip install weaviate-client"
            ) from None

        headers = {}
        if self._openai_api_key:
            headers["X-OpenAI-Api-Key"] = self._openai_api_key

        logger.info("Connecting to Weaviate at %s", self._url)
        try:
            client = await asyncio.to_thread(
                weaviate.connect_to_weaviate_cloud,
                cluster_url=self._url,
                auth_credentials=Auth.api_key(self._api_key),
                headers=headers,
            )
        except Exception as e:
            raise OracleError(f"Could not connect to Weaviate: {e}") from e

        if not client.is_live():
            client.close()
            raise OracleError("Weaviate client connected but is not live")
        self._client = client

    async def close(self) -> None:
        if self._client is not None:
            logger.info("Closing Weaviate client")
            await asyncio.to_thread(self._client.close)
            self._client = None

    async def search(self, query: str, limit: int = 15) -> list[ProductCandidate]:
        if self._client is None:
            await self.open()

        from weaviate.classes.query import MetadataQuery

        collection = self._client.collections.get(self._collection_name)
        try:
            response = await asyncio.to_thread(
                collection.query.near_text,
                query=query,
                limit=limit,
                return_metadata=MetadataQuery(distance=True),
                return_properties=_RETURN_PROPERTIES,
            )
        except Exception as e:
            raise OracleError(f"Product search failed for {query!r}: {e}") from e

        return [_to_candidate(obj) for obj in response.objects]


def _to_candidate(obj) -> ProductCandidate:
    props = obj.properties or {}
    metadata = getattr(obj, "metadata", None)
    distance = getattr(metadata, "distance", None) if metadata is not None else None
    return ProductCandidate(
        name=props.get("name") or "Unknown Name",
        price=float(props.get("price") or 0.0),
        supermarket_name=props.get("supermarketName") or "Unknown Supermarket",
        unit=props.get("standardizedUnit"),
        distance=distance,
        product_id=str(obj.uuid),
        amount=props.get("amount"),
    )
