# oddsdesk/clients/oddsapi.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from ..core.http import DEFAULT_TIMEOUT, HttpRetryingClient

logger = logging.getLogger(__name__)

DEFAULT_BASE = "https://api.the-odds-api.com/v4"


class OddsApiError(RuntimeError):
    pass


@dataclass
class Quota:
    requests_remaining: Optional[int] = None
    requests_used: Optional[int] = None


class OddsApiClient:
    """
    Thin wrapper over The Odds API v4. Prices are always requested in decimal format.

      - sports:      GET /sports
      - odds:        GET /sports/{sport}/odds?regions=&markets=[&eventIds]
      - events:      GET /sports/{sport}/events
      - event odds:  GET /sports/{sport}/events/{event_id}/odds?regions=&markets=
                     (alternate lines, period markets and player props live here)
      - scores:      GET /sports/{sport}/scores?daysFrom=

    Remaining/used request counts are read from every response's headers.
    """

    # ------------ lifecycle ------------
    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE, region: str = "us",
                 timeout: float = DEFAULT_TIMEOUT, transport: Optional[httpx.BaseTransport] = None,
                 sleep=time.sleep):
        self._key = api_key
        self._base = base_url.rstrip("/")
        self._region = region
        self._http = HttpRetryingClient(timeout=timeout, transport=transport, sleep=sleep)
        self.quota = Quota()

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "OddsApiClient":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    # ------------ low-level helpers ------------
    def _get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        url = f"{self._base}{path}"
        q = {"apiKey": self._key, **self._clean(params or {})}
        try:
            resp = self._http.get(url, params=q)
        except httpx.HTTPStatusError as e:
            r = e.response
            self._update_quota(r.headers)
            raise OddsApiError(f"GET {path} -> {r.status_code}: {r.text}") from e
        except httpx.TransportError as e:
            raise OddsApiError(f"GET {path} failed: {e}") from e
        self._update_quota(resp.headers)
        try:
            return resp.json()
        except ValueError as e:
            raise OddsApiError(f"GET {path} returned non-JSON body") from e

    def _update_quota(self, headers: Mapping[str, str]) -> None:
        remaining = headers.get("x-requests-remaining")
        used = headers.get("x-requests-used")
        if remaining is not None:
            self.quota.requests_remaining = _to_int(remaining)
        if used is not None:
            self.quota.requests_used = _to_int(used)
        logger.debug("odds api quota: remaining=%s used=%s", self.quota.requests_remaining, self.quota.requests_used)

    @staticmethod
    def _clean(d: Mapping[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in d.items() if v is not None}

    @staticmethod
    def _csv(values: Optional[Iterable[str]]) -> Optional[str]:
        return ",".join(values) if values else None

    # ------------ endpoints ------------
    def sports(self) -> List[Dict[str, Any]]:
        return self._get("/sports")

    def odds(self, sport_key: str, markets: Iterable[str] = ("h2h", "spreads", "totals"),
             regions: Optional[str] = None, event_ids: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        return self._get(f"/sports/{sport_key}/odds", {
            "regions": regions or self._region,
            "markets": self._csv(markets),
            "eventIds": self._csv(event_ids),
            "oddsFormat": "decimal",
            "dateFormat": "iso",
        })

    def events(self, sport_key: str) -> List[Dict[str, Any]]:
        return self._get(f"/sports/{sport_key}/events", {"dateFormat": "iso"})

    def event_odds(self, sport_key: str, event_id: str, markets: Iterable[str],
                   regions: Optional[str] = None) -> Dict[str, Any]:
        return self._get(f"/sports/{sport_key}/events/{event_id}/odds", {
            "regions": regions or self._region,
            "markets": self._csv(markets),
            "oddsFormat": "decimal",
            "dateFormat": "iso",
        })

    def scores(self, sport_key: str, days_from: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._get(f"/sports/{sport_key}/scores", {"daysFrom": days_from, "dateFormat": "iso"})


def _to_int(s: str) -> Optional[int]:
    try:
        return int(s)
    except (TypeError, ValueError):
        return None
