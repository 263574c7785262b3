"""MaterialsGateway: search entry point and per-material dataset aggregation.

This module coordinates the normalizer, the query compiler and the REST
client. A search is one upstream call; a detail request fans out one call per
dataset and merges the shaped results.

Key Features:
- Stateless per call: nothing is cached or persisted between requests
- All dataset calls for a detail request are started concurrently
- Fail-fast aggregation: the first failing dataset fails the whole request,
  and no partial result is returned
- Calls still in flight after a failure are not cancelled; they are tracked
  until they complete so their connections are released, and drained when
  the gateway closes
- No retries anywhere

Example:
    async with MaterialsGateway() as gateway:
        page = await gateway.search_materials({"formula": "LiFePO4"})
        for summary in page.data:
            print(summary.material_id, summary.band_gap)

        detail = await gateway.fetch_material_properties(
            "mp-149", ["thermo", "elasticity"]
        )
        print(detail.to_dict())
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Iterable, Mapping

import httpx
from pydantic import ValidationError

from .assembler import assemble_response, shape_dataset
from .clients.mp_rest import MpRestClient
from .constants import SUMMARY_ENDPOINT
from .datasets import (
    TASKS_DATASET,
    get_descriptor,
    is_known_dataset,
    resolve_datasets,
    split_keys,
)
from .errors import ClientInputError, DecodeError
from .models import DetailRequest, MaterialPropertyResponse, SearchParams
from .normalizer import normalize_pagination, normalize_search_params, parse_string_list
from .query import compile_dataset_query, compile_search_query
from .schemas import MaterialsPage, MaterialSummary, SearchMeta
from .settings import GatewaySettings

logger = logging.getLogger(__name__)


class MaterialsGateway:
    """Query normalization and multi-dataset aggregation gateway.

    The gateway owns one MpRestClient (and therefore one connection pool)
    for its lifetime. Requests share nothing else.

    Attributes:
        settings: GatewaySettings configuration

    Example:
        settings = GatewaySettings(mp_api_key="your_key")
        async with MaterialsGateway(settings=settings) as gateway:
            page = await gateway.search_materials({"elements": "Li,Fe"})
    """

    def __init__(
        self,
        settings: GatewaySettings | None = None,
        client: MpRestClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            settings: GatewaySettings instance (uses singleton if None)
            client: Pre-built client; its lifecycle stays with the caller
            transport: httpx transport for the client the gateway creates
        """
        self._settings = settings or GatewaySettings.get_instance()
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self._in_flight: set[asyncio.Task[Any]] = set()
        self._entered = False

    async def __aenter__(self) -> "MaterialsGateway":
        """Enter async context manager, opening the REST client."""
        if self._owns_client:
            self._client = MpRestClient(settings=self._settings, transport=self._transport)
            await self._client.__aenter__()
        self._entered = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager.

        Waits for dataset calls abandoned by a failed aggregation before the
        client is closed.
        """
        self._entered = False
        await self.drain()

        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

        logger.debug("MaterialsGateway resources cleaned up")

    @property
    def settings(self) -> GatewaySettings:
        """Get the current settings."""
        return self._settings

    @property
    def in_flight(self) -> int:
        """Number of dataset calls still running."""
        return len(self._in_flight)

    def _get_client(self) -> MpRestClient:
        if not self._entered or self._client is None:
            raise RuntimeError(
                "MaterialsGateway must be used as async context manager: "
                "async with MaterialsGateway() as gateway: ..."
            )
        return self._client

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search_materials(
        self,
        params: SearchParams | Mapping[str, Any] | None = None,
    ) -> MaterialsPage:
        """Search the summary endpoint.

        Args:
            params: Canonical SearchParams, or a raw request bag to normalize

        Returns:
            MaterialsPage with summaries and paging meta

        Raises:
            ConfigurationError: If no API key is configured
            TransportError: On connection issues
            UpstreamError: On upstream non-success status
            DecodeError: On malformed upstream documents
        """
        client = self._get_client()
        client.require_api_key()

        if not isinstance(params, SearchParams):
            params = normalize_search_params(params)

        page, page_size = normalize_pagination(params.page, params.page_size)
        params = replace(params, page=page, page_size=page_size)
        upstream = await client.fetch(SUMMARY_ENDPOINT, compile_search_query(params))

        try:
            summaries = [MaterialSummary.model_validate(doc) for doc in upstream.data]
        except ValidationError as e:
            logger.warning("Invalid summary document from %s: %s", SUMMARY_ENDPOINT, e)
            raise DecodeError(SUMMARY_ENDPOINT, original_error=e) from e

        logger.info(
            "Summary search returned %d of %d materials", len(summaries), upstream.total_doc
        )
        return MaterialsPage(
            data=summaries,
            meta=SearchMeta(
                total_doc=upstream.total_doc,
                limit=params.page_size,
                skip=params.skip,
                message=upstream.message,
            ),
        )

    # -------------------------------------------------------------------------
    # Detail aggregation
    # -------------------------------------------------------------------------

    async def fetch_dataset(
        self,
        material_id: str,
        dataset: str,
        task_ids: Iterable[str] | None = None,
    ) -> Any:
        """Fetch and shape a single dataset of a material.

        Returns:
            The shaped payload (None for an empty single-record dataset)

        Raises:
            ClientInputError: Unknown dataset, or tasks without task ids.
                Raised before any upstream call is made.
        """
        client = self._get_client()
        descriptor = get_descriptor(dataset)
        query = compile_dataset_query(descriptor, material_id, task_ids)
        upstream = await client.fetch(descriptor.path, query)
        return shape_dataset(descriptor, upstream.data)

    def _dispatch_set(
        self,
        datasets: str | Iterable[str] | None,
        task_ids: tuple[str, ...],
    ) -> list[str]:
        if datasets is None:
            return resolve_datasets(None, task_ids)

        selected: list[str] = []
        for key in split_keys(datasets):
            if not is_known_dataset(key):
                logger.debug("Skipping unknown dataset %r", key)
                continue
            if key == TASKS_DATASET and not task_ids:
                logger.debug("Skipping tasks dataset: no task ids supplied")
                continue
            if key not in selected:
                selected.append(key)
        return selected

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._in_flight.add(task)
        task.add_done_callback(self._release)

    def _release(self, task: asyncio.Task[Any]) -> None:
        self._in_flight.discard(task)
        # Retrieve the outcome so abandoned failures are not reported as unhandled
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Dataset call %s finished with %r", task.get_name(), task.exception())

    async def fetch_material_properties(
        self,
        material_id: str,
        datasets: str | Iterable[str] | None = None,
        task_ids: Iterable[str] | None = None,
    ) -> MaterialPropertyResponse:
        """Fetch several datasets of one material concurrently.

        Unknown dataset keys are dropped. The tasks dataset is dropped when no
        task id is supplied. If any dataset call fails, the aggregation fails
        with that error and every other result is discarded.

        Args:
            material_id: Catalog identifier (e.g. 'mp-149')
            datasets: Dataset keys as a list or comma separated string
                (default: every dataset except tasks, plus tasks when task
                ids are given)
            task_ids: External task identifiers for the tasks dataset

        Returns:
            MaterialPropertyResponse keyed by dataset name

        Raises:
            ClientInputError: If material_id is blank
            ConfigurationError: If no API key is configured
            MaterialsAPIError: The first failing dataset's error
        """
        client = self._get_client()
        material_id = (material_id or "").strip()
        if not material_id:
            raise ClientInputError("material_id", "A material id is required.")
        client.require_api_key()

        cleaned_task_ids = parse_string_list(list(task_ids or ())) or ()
        dispatch = self._dispatch_set(datasets, cleaned_task_ids)
        if not dispatch:
            return assemble_response(material_id, {})

        logger.debug("Fetching %s for %s", dispatch, material_id)
        tasks = {
            key: asyncio.create_task(
                self.fetch_dataset(material_id, key, cleaned_task_ids),
                name=f"{material_id}:{key}",
            )
            for key in dispatch
        }
        for task in tasks.values():
            self._track(task)

        done, pending = await asyncio.wait(
            tasks.values(), return_when=asyncio.FIRST_EXCEPTION
        )

        for key, task in tasks.items():
            if task in done and not task.cancelled() and task.exception() is not None:
                error = task.exception()
                logger.warning(
                    "Dataset %s failed for %s (%d call(s) still in flight): %s",
                    key,
                    material_id,
                    len(pending),
                    error,
                )
                raise error

        return assemble_response(
            material_id, {key: task.result() for key, task in tasks.items()}
        )

    async def get_material_detail(self, request: DetailRequest) -> MaterialPropertyResponse:
        """Run a normalized DetailRequest."""
        return await self.fetch_material_properties(
            request.material_id, request.datasets, request.task_ids
        )

    async def drain(self) -> None:
        """Wait for abandoned dataset calls, bounded by the request timeout."""
        if not self._in_flight:
            return
        timeout = self._settings.request_timeout_seconds
        _, pending = await asyncio.wait(
            set(self._in_flight), timeout=timeout if timeout > 0 else None
        )
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("Cancelled %d dataset call(s) still running at shutdown", len(pending))
