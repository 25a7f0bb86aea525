"""REST client for the games catalogue API."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import aiohttp
from aiohttp import ClientSession

from ...config.settings import Settings
from ...domain.exceptions import TransportException
from ...domain.models import GameItem

logger = logging.getLogger(__name__)


class GamesApiClient:
    """Looks up game names and prices by id.

    The HTTP session is opened on first use and reused until ``close``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.session: Optional[ClientSession] = None

    async def __aenter__(self) -> "GamesApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _default_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.games_api_key:
            headers["Ocp-Apim-Subscription-Key"] = self.settings.games_api_key
        return headers

    def _get_session(self) -> ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers=self._default_headers(),
                timeout=aiohttp.ClientTimeout(total=self.settings.games_api_timeout_seconds),
            )
        return self.session

    async def close(self) -> None:
        if self.session:
            await self.session.close()
        self.session = None

    def game_url(self, game_id: int) -> str:
        return urljoin(self.settings.games_api_url, f"/games/{game_id}")

    async def get_game(self, game_id: int, correlation_id: Optional[str] = None) -> Optional[GameItem]:
        """Fetch a game. Returns None when the API does not answer with success."""
        session = self._get_session()
        headers = {"X-Correlation-Id": correlation_id} if correlation_id else {}

        try:
            async with session.get(self.game_url(game_id), headers=headers) as response:
                if response.status != 200:
                    logger.warning(
                        f"Failed to get game {game_id} from Games API: HTTP {response.status}"
                    )
                    return None

                data: Dict[str, Any] = await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"HTTP request failed while getting game {game_id}: {e}")
            raise TransportException(
                f"HTTP error getting game {game_id}: {e}",
                self.settings.games_api_url,
                {"game_id": game_id},
            ) from e

        logger.debug(f"Retrieved game {game_id} from Games API")
        return GameItem(
            game_id=game_id,
            name=data.get("name") or data.get("title") or "",
            price=data.get("price", 0.0),
        )

    async def ping(self) -> int:
        """Status code of the API root, used by the health check."""
        session = self._get_session()
        try:
            async with session.get(urljoin(self.settings.games_api_url, "/")) as response:
                return response.status
        except aiohttp.ClientError as e:
            raise TransportException(f"Games API unreachable: {e}", self.settings.games_api_url) from e
