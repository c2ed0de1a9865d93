"""
Azure Cosmos DB session management for document storage.

Uses async Cosmos DB SDK with DefaultAzureCredential for RBAC authentication.
This module provides a unified client for all Cosmos DB operations.
"""

import logging
from typing import Any, AsyncIterator

from azure.core import MatchConditions
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosBatchOperationError,
)
from azure.identity.aio import DefaultAzureCredential

from core.config import settings
from core.exceptions import DocumentConflictError, NotFoundError, PreconditionFailedError

logger = logging.getLogger(__name__)

# Container names
USER_PROFILES_CONTAINER = "user_profiles"
NAGRIK_LOOKUP_CONTAINER = "nagrik-lookup"
COUNTERS_CONTAINER = "counters"
CONSTITUENCY_SCORES_CONTAINER = "constituency_scores"
DISCUSSION_POSTS_CONTAINER = "discussion_posts"
COMMENTS_CONTAINER = "comments"
REACTIONS_CONTAINER = "reactions"
BLOGS_CONTAINER = "blogs"
BLOG_LIKES_CONTAINER = "blog_likes"

# HTTP status codes reported by Cosmos for failed batch operations
STATUS_CONFLICT = 409
STATUS_PRECONDITION_FAILED = 412
STATUS_NOT_FOUND = 404

# Global client instances (lazy-initialized)
_cosmos_client: CosmosClient | None = None
_database: DatabaseProxy | None = None
_credential: DefaultAzureCredential | None = None


async def get_cosmos_client() -> CosmosClient:
    """
    Get or create the Cosmos DB client.

    Supports two authentication modes:
    1. Connection string (for local development with Cosmos DB Emulator)
    2. DefaultAzureCredential/RBAC (for Azure deployment)

    The client is singleton and reused across requests.
    """
    global _cosmos_client, _credential

    if _cosmos_client is None:
        if settings.AZURE_COSMOS_CONNECTION_STRING:
            # Format: AccountEndpoint=https://...;AccountKey=...;
            conn_parts = dict(
                part.split("=", 1) for part in settings.AZURE_COSMOS_CONNECTION_STRING.split(";") if "=" in part
            )
            endpoint = conn_parts.get("AccountEndpoint", "")
            key = conn_parts.get("AccountKey", "")

            if not endpoint or not key:
                raise ValueError("AZURE_COSMOS_CONNECTION_STRING must contain AccountEndpoint and AccountKey")

            _cosmos_client = CosmosClient(
                url=endpoint,
                credential=key,
                connection_verify=not settings.AZURE_COSMOS_DISABLE_SSL,
            )
            logger.info(
                f"Initialized Cosmos DB client for {endpoint} (connection string mode, "
                f"SSL verification: {not settings.AZURE_COSMOS_DISABLE_SSL})"
            )
        else:
            if not settings.AZURE_COSMOS_ENDPOINT:
                raise ValueError("Either AZURE_COSMOS_ENDPOINT or AZURE_COSMOS_CONNECTION_STRING must be set")

            _credential = DefaultAzureCredential()
            _cosmos_client = CosmosClient(
                url=settings.AZURE_COSMOS_ENDPOINT,
                credential=_credential,
            )
            logger.info(f"Initialized Cosmos DB client for {settings.AZURE_COSMOS_ENDPOINT} (RBAC mode)")

    return _cosmos_client


async def get_database() -> DatabaseProxy:
    """Get the Cosmos DB database proxy."""
    global _database

    if _database is None:
        client = await get_cosmos_client()
        _database = client.get_database_client(settings.AZURE_COSMOS_DATABASE)
        logger.info(f"Connected to database: {settings.AZURE_COSMOS_DATABASE}")

    return _database


async def get_container(container_name: str) -> ContainerProxy:
    """Get a container proxy for the specified container."""
    database = await get_database()
    return database.get_container_client(container_name)


async def close_cosmos() -> None:
    """
    Close Cosmos DB connections.

    Should be called during application shutdown.
    """
    global _cosmos_client, _database, _credential

    if _cosmos_client is not None:
        await _cosmos_client.close()
        _cosmos_client = None
        _database = None
        logger.info("Closed Cosmos DB client")

    if _credential is not None:
        await _credential.close()
        _credential = None


# ============================================================================
# Utility Functions for Common Operations
# ============================================================================


async def create_item(container_name: str, item: dict[str, Any]) -> dict[str, Any]:
    """
    Create a new item, failing if an item with the same id already exists.

    This is the create-if-absent primitive: uniqueness checks that must be
    atomic use the document id as the key and rely on this call.

    Raises:
        DocumentConflictError: An item with this id exists in the partition.
    """
    container = await get_container(container_name)
    try:
        return await container.create_item(body=item)
    except ResourceExistsError as e:
        raise DocumentConflictError(f"{container_name}/{item.get('id')} already exists") from e


async def read_item(
    container_name: str,
    item_id: str,
    partition_key: str,
) -> dict[str, Any] | None:
    """Read an item by ID and partition key. Returns None if not found."""
    container = await get_container(container_name)
    try:
        return await container.read_item(item=item_id, partition_key=partition_key)
    except ResourceNotFoundError:
        return None


async def replace_item(
    container_name: str,
    item: dict[str, Any],
    etag: str | None = None,
) -> dict[str, Any]:
    """
    Replace an item, optionally guarded by its etag (optimistic concurrency).

    Raises:
        PreconditionFailedError: The item changed since `etag` was read.
        NotFoundError: The item no longer exists.
    """
    container = await get_container(container_name)
    kwargs: dict[str, Any] = {}
    if etag:
        kwargs["etag"] = etag
        kwargs["match_condition"] = MatchConditions.IfNotModified
    try:
        return await container.replace_item(item=item["id"], body=item, **kwargs)
    except CosmosAccessConditionFailedError as e:
        raise PreconditionFailedError(f"{container_name}/{item['id']} was modified") from e
    except ResourceNotFoundError as e:
        raise NotFoundError(f"{container_name}/{item['id']} not found") from e


async def patch_item(
    container_name: str,
    item_id: str,
    partition_key: str,
    operations: list[dict[str, Any]],
    filter_predicate: str | None = None,
) -> dict[str, Any]:
    """
    Apply partial-document patch operations atomically and return the result.

    Counters use `{"op": "incr", "path": "/field", "value": 1}` so concurrent
    increments never lose updates.

    Raises:
        NotFoundError: The item does not exist.
        PreconditionFailedError: `filter_predicate` did not match.
    """
    container = await get_container(container_name)
    kwargs: dict[str, Any] = {}
    if filter_predicate:
        kwargs["filter_predicate"] = filter_predicate
    try:
        return await container.patch_item(
            item=item_id,
            partition_key=partition_key,
            patch_operations=operations,
            **kwargs,
        )
    except ResourceNotFoundError as e:
        raise NotFoundError(f"{container_name}/{item_id} not found") from e
    except CosmosAccessConditionFailedError as e:
        raise PreconditionFailedError(f"{container_name}/{item_id} did not match filter") from e


async def delete_item(
    container_name: str,
    item_id: str,
    partition_key: str,
) -> None:
    """
    Delete an item by ID and partition key.

    Raises:
        NotFoundError: The item does not exist.
    """
    container = await get_container(container_name)
    try:
        await container.delete_item(item=item_id, partition_key=partition_key)
    except ResourceNotFoundError as e:
        raise NotFoundError(f"{container_name}/{item_id} not found") from e


async def execute_batch(
    container_name: str,
    partition_key: str,
    operations: list[tuple],
) -> list[dict[str, Any]]:
    """
    Execute a transactional batch within a single logical partition.

    Either every operation commits or none does. Operation tuples follow the
    SDK format, e.g. ("create", (item,)), ("patch", (item_id, ops)),
    ("replace", (item_id, item), {"if_match_etag": etag}).

    Raises:
        DocumentConflictError: A "create" hit an existing id.
        PreconditionFailedError: An etag-guarded operation lost a race.
        NotFoundError: A patched/replaced item does not exist.
    """
    container = await get_container(container_name)
    try:
        return await container.execute_item_batch(
            batch_operations=operations,
            partition_key=partition_key,
        )
    except CosmosBatchOperationError as e:
        status = _batch_failure_status(e)
        logger.debug(f"Batch on {container_name}/{partition_key} failed at op {e.error_index} ({status})")
        if status == STATUS_CONFLICT:
            raise DocumentConflictError(f"{container_name}/{partition_key}: batch create conflict") from e
        if status == STATUS_PRECONDITION_FAILED:
            raise PreconditionFailedError(f"{container_name}/{partition_key}: batch precondition failed") from e
        if status == STATUS_NOT_FOUND:
            raise NotFoundError(f"{container_name}/{partition_key}: batch target missing") from e
        raise


def _batch_failure_status(error: CosmosBatchOperationError) -> int | None:
    """Status code of the operation that aborted a transactional batch."""
    responses = getattr(error, "operation_responses", None) or []
    index = getattr(error, "error_index", None)
    if index is not None and 0 <= index < len(responses):
        status = responses[index].get("statusCode")
        if status is not None:
            return int(status)
    return getattr(error, "status_code", None)


async def iter_items(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
    partition_key: str | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Stream query results page by page without materializing the full list.

    Used by batch jobs that walk an entire container.
    """
    container = await get_container(container_name)
    query_kwargs: dict[str, Any] = {"query": query}
    if parameters:
        query_kwargs["parameters"] = parameters
    if partition_key:
        query_kwargs["partition_key"] = partition_key

    async for item in container.query_items(**query_kwargs):
        yield item


async def query_items(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
    partition_key: str | None = None,
    max_items: int | None = None,
) -> list[dict[str, Any]]:
    """
    Query items using SQL-like syntax.

    Example:
        results = await query_items(
            'user_profiles',
            'SELECT * FROM c WHERE c.nagrik_number = @n',
            parameters=[{'name': '@n', 'value': 1001}]
        )
    """
    container = await get_container(container_name)

    # enable_cross_partition_query is implied when no partition_key is given
    query_kwargs: dict[str, Any] = {
        "query": query,
    }

    if parameters:
        query_kwargs["parameters"] = parameters

    if partition_key:
        query_kwargs["partition_key"] = partition_key

    if max_items:
        query_kwargs["max_item_count"] = max_items

    items: list[dict[str, Any]] = []
    async for item in container.query_items(**query_kwargs):
        items.append(item)
        if max_items and len(items) >= max_items:
            break

    return items


async def query_count(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
    partition_key: str | None = None,
) -> int:
    """
    Execute a COUNT query and return the integer result.

    Convenience wrapper for queries using SELECT VALUE COUNT(1).
    """
    results = await query_items(container_name, query, parameters, partition_key)
    if results and len(results) > 0:
        result = results[0]
        if isinstance(result, (int, float)):
            return int(result)
        return 0
    return 0
