"""Management API client for the target project.

This client exposes one coroutine per Management API operation the importers
need. Every method returns the decoded JSON response; retries, rate limiting
and error mapping are inherited from BaseAPIClient.
"""

from typing import Any
from urllib.parse import quote

import httpx

from kontent_restore.client.base_client import BaseAPIClient
from kontent_restore.config import ManagementApiConfig, RetryConfig
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


class ManagementClient(BaseAPIClient):
    """Client for the Kontent Management API (v2) of one project."""

    def __init__(
        self,
        config: ManagementApiConfig,
        retry_config: RetryConfig | None = None,
        rate_limit: int = 10,
        log_payloads: bool = False,
        max_payload_size: int = 10000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Management API client.

        Args:
            config: Management API configuration
            retry_config: Retry policy for transient failures
            rate_limit: Maximum requests per second
            log_payloads: Enable request/response payload logging
            max_payload_size: Maximum payload size to log before truncation
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(
            base_url=f"{config.base_url}/projects/{config.project_id}",
            api_key=config.api_key,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
            rate_limit=rate_limit,
            retry_config=retry_config,
            log_payloads=log_payloads,
            max_payload_size=max_payload_size,
            transport=transport,
        )
        self.project_id = config.project_id
        logger.info("management_client_initialized", project_id=config.project_id)

    @staticmethod
    def _variant_endpoint(item_codename: str, language_codename: str) -> str:
        return (
            f"items/codename/{quote(item_codename, safe='')}"
            f"/variants/codename/{quote(language_codename, safe='')}"
        )

    # Languages
    async def list_languages(self) -> list[dict[str, Any]]:
        """List all languages of the project, following continuation tokens."""
        languages: list[dict[str, Any]] = []
        headers: dict[str, str] | None = None

        while True:
            response = await self.get("languages", headers=headers)
            languages.extend(response.get("languages", []))

            continuation = (response.get("pagination") or {}).get("continuation_token")
            if not continuation:
                break
            headers = {"x-continuation": continuation}

        logger.debug("languages_listed", count=len(languages))
        return languages

    async def add_language(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a language."""
        return await self.post("languages", json_data=data)

    async def modify_language(
        self, codename: str, operations: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Apply replace operations to the language with the given codename."""
        return await self.patch(
            f"languages/codename/{quote(codename, safe='')}", json_data=operations
        )

    # Taxonomies and content model
    async def add_taxonomy(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a taxonomy group."""
        return await self.post("taxonomies", json_data=data)

    async def add_content_type_snippet(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a content type snippet."""
        return await self.post("snippets", json_data=data)

    async def add_content_type(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a content type."""
        return await self.post("types", json_data=data)

    # Assets
    async def add_asset_folders(self, folders: list[dict[str, Any]]) -> dict[str, Any]:
        """Create a nested asset folder tree in one request."""
        return await self.post("folders", json_data={"folders": folders})

    async def upload_binary_file(
        self, filename: str, data: bytes, content_type: str
    ) -> dict[str, Any]:
        """Upload binary content and return the file reference."""
        return await self.post(
            f"files/{quote(filename, safe='')}",
            content=data,
            headers={"Content-Type": content_type or "application/octet-stream"},
        )

    async def add_asset(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create an asset referencing an uploaded file."""
        return await self.post("assets", json_data=data)

    # Content
    async def add_content_item(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a content item."""
        return await self.post("items", json_data=data)

    async def upsert_language_variant(
        self, item_codename: str, language_codename: str, elements: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Create or update the variant of an item in a language."""
        return await self.put(
            self._variant_endpoint(item_codename, language_codename),
            json_data={"elements": elements},
        )

    async def publish_language_variant(
        self, item_codename: str, language_codename: str
    ) -> dict[str, Any]:
        """Publish the variant of an item in a language."""
        return await self.put(f"{self._variant_endpoint(item_codename, language_codename)}/publish")

    async def change_workflow_step(
        self, item_codename: str, language_codename: str, workflow_step_id: str
    ) -> dict[str, Any]:
        """Move the variant of an item in a language to a workflow step."""
        return await self.put(
            f"{self._variant_endpoint(item_codename, language_codename)}"
            f"/workflow/{quote(workflow_step_id, safe='')}"
        )
