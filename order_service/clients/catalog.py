from typing import Iterable, List, Optional
import httpx
from pydantic import ValidationError
from order_service.core.config import settings
from order_service.core.errors import ProductLookupError
from order_service.core.logging import get_logger
from order_service.schemas import ProductRef

log = get_logger(__name__)

class CatalogClient:
    """Resolves product ids against the catalog service.

    Ids the catalog does not know are simply missing from the result; only
    transport failures and non-200 responses raise ``ProductLookupError``.
    """

    def __init__(self, base_url: str, path: str = "/catalog/v1/products/validate",
                 internal_key: str = "", timeout: float = 5.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.url = base_url.rstrip("/") + path
        self.internal_key = internal_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "CatalogClient":
        return cls(
            settings.CATALOG_BASE,
            settings.CATALOG_VALIDATE_PATH,
            internal_key=settings.SVC_INTERNAL_KEY,
            timeout=settings.HTTP_TIMEOUT,
        )

    def lookup(self, product_ids: Iterable[int]) -> List[ProductRef]:
        ids = sorted(set(product_ids))
        if not ids:
            return []
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(
                    self.url,
                    json={"ids": ids},
                    headers={"X-Internal-Key": self.internal_key},
                )
        except httpx.RequestError as exc:
            log.error(f"Catalog request to {self.url} failed: {exc!r}")
            raise ProductLookupError() from exc
        if resp.status_code != 200:
            log.error(f"Catalog returned {resp.status_code}: {resp.text}")
            raise ProductLookupError()
        try:
            return [ProductRef.model_validate(p) for p in resp.json()]
        except (ValueError, TypeError, ValidationError) as exc:
            log.error(f"Catalog returned an unreadable body: {exc!r}")
            raise ProductLookupError() from exc
