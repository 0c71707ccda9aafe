import httpx
from datetime import date
from typing import Optional, Protocol

from config import settings
from models.runner import OddsMap, Runner
from services.errors import FetchFailure
from utils.logger import get_logger

logger = get_logger("odds_source")


class OddsSource(Protocol):
    """Anything that can produce the current runner prices for a race day."""

    async def fetch_current_odds(self, race_date: date) -> OddsMap: ...


class HttpOddsSource:
    """Client for the upstream odds feed.

    ``GET {base_url}/runners?date=YYYY-MM-DD`` returning a JSON list of runner
    objects (or ``{"runners": [...]}``). Session handling with the provider is
    the feed gateway's job; this client only sends the optional app key.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        app_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.ODDS_API_URL).rstrip("/")
        self.app_key = app_key if app_key is not None else settings.ODDS_API_APP_KEY
        self.timeout = timeout if timeout is not None else settings.ODDS_API_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.app_key:
                headers["X-Application"] = self.app_key
            self._client = httpx.AsyncClient(
                timeout=self.timeout, headers=headers, transport=self._transport
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_current_odds(self, race_date: date) -> OddsMap:
        """Fetch every runner on the given day's card, keyed by runner id"""
        client = await self._get_client()
        params = {"date": race_date.isoformat()}
        try:
            response = await client.get(f"{self.base_url}/runners", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchFailure(
                f"Odds source rejected request: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailure(f"Odds source unreachable: {e}") from e
        except ValueError as e:
            raise FetchFailure(f"Odds source returned invalid JSON: {e}") from e

        if isinstance(data, dict):
            data = data.get("runners", [])
        if not isinstance(data, list):
            raise FetchFailure("Odds source payload is not a list of runners")

        runners: OddsMap = {}
        skipped = 0
        for raw in data:
            if not isinstance(raw, dict):
                skipped += 1
                continue
            try:
                runner = Runner.from_api_response(raw)
            except (TypeError, ValueError):
                skipped += 1
                continue
            runners[runner.runner_id] = runner

        if skipped:
            logger.warning("Skipped malformed runner entries", skipped=skipped)
        logger.info("Fetched runners", runners=len(runners), date=race_date.isoformat())
        return runners
