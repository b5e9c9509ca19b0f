"""
Client for the practice management API.

Wraps the three read endpoints the billing engine consumes: monthly sessions,
payments and patients. Responses are returned as raw JSON records; validation
into models happens in the engine so malformed records can be dropped there.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from core.config import PRACTICE_API_BASE_URL, PRACTICE_API_TOKEN, PRACTICE_API_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class PracticeApiError(Exception):
    """Raised when a practice API request fails or returns an unusable body."""
    pass


class PracticeApiClient:
    """Async HTTP client for sessions, payments and patients."""

    SESSIONS_MONTHLY_PATH = "/sessions/monthly/{year}/{month}"
    PAYMENTS_PATH = "/payments"
    PATIENTS_PATH = "/patients"

    def __init__(
        self,
        base_url: str = PRACTICE_API_BASE_URL,
        token: str = PRACTICE_API_TOKEN,
        timeout: float = PRACTICE_API_TIMEOUT_SECONDS
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    async def get_monthly_sessions(self, year: int, month: int) -> List[Dict[str, Any]]:
        """Get all sessions scheduled in a calendar month."""
        path = self.SESSIONS_MONTHLY_PATH.format(year=year, month=month)
        body = await self._get(path)
        # A non-list body means "no sessions" for that month
        return body if isinstance(body, list) else []

    async def get_payments(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get payments, optionally narrowed by inclusive YYYY-MM-DD bounds.

        The endpoint answers either a bare list or {"payments": [...], "totals": {...}}.
        """
        params: Dict[str, Any] = {}
        if date_from:
            params["from"] = date_from
        if date_to:
            params["to"] = date_to
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit

        body = await self._get(self.PAYMENTS_PATH, params=params)
        if isinstance(body, dict):
            body = body.get("payments")
        if not isinstance(body, list):
            raise PracticeApiError(f"Unexpected payments response type: {type(body).__name__}")
        return body

    async def get_patients(self) -> List[Dict[str, Any]]:
        """Get all patients of the practice."""
        body = await self._get(self.PATIENTS_PATH)
        if not isinstance(body, list):
            raise PracticeApiError(f"Unexpected patients response type: {type(body).__name__}")
        return body

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Practice API request failed: GET {path}: {e}")
            raise PracticeApiError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            # Body was not valid JSON
            logger.warning(f"Practice API returned invalid JSON: GET {path}: {e}")
            raise PracticeApiError(f"GET {path} returned invalid JSON") from e
