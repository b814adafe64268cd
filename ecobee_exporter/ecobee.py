"""
Ecobee API client module
Thermostat and summary queries, OAuth token refresh and PIN authorization
"""
import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError, validator
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ecobee_exporter.models import EquipmentStatus, Selection, Thermostat, ThermostatSummary

logger = logging.getLogger(__name__)

ECOBEE_API_URL = "https://api.ecobee.com"
ECOBEE_API_VERSION = "1"
ECOBEE_SCOPE = "smartRead"

# Ecobee status code for an expired access token
TOKEN_EXPIRED_CODE = 14
# Refresh slightly before the advertised expiry
EXPIRY_MARGIN = timedelta(seconds=30)


class EcobeeError(Exception):
    """Base class for Ecobee client failures"""


class EcobeeTransportError(EcobeeError):
    """Network failure or unexpected HTTP status"""


class EcobeeParseError(EcobeeError):
    """Response body could not be decoded into records"""


class EcobeeAuthError(EcobeeError):
    """No usable tokens, or the token endpoint rejected the request"""


class EcobeeAPIError(EcobeeError):
    """Ecobee answered with a non-zero status code"""

    def __init__(self, code: int, message: str):
        super().__init__(f"Ecobee API error {code}: {message}")
        self.code = code
        self.message = message


class Tokens(BaseModel):
    access_token: str = ""
    refresh_token: str = ""
    expires_at: Optional[datetime] = None

    @validator('expires_at')
    def expires_at_must_be_utc(cls, v):
        # Naive timestamps are UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def expired(self, now: Optional[datetime] = None) -> bool:
        if not self.access_token or self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now + EXPIRY_MARGIN >= self.expires_at


class PinAuthorization(BaseModel):
    pin: str = Field(alias="ecobeePin", description="PIN to enter in the Ecobee portal under My Apps")
    code: str = Field(description="Authorization code exchanged for tokens once the PIN is accepted")
    expires_in: int = Field(0, description="Minutes the PIN stays valid")
    interval: int = Field(0, description="Minimum seconds between token polls")


class TokenStore:
    """Persists OAuth tokens as JSON"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Tokens:
        if not self.path.exists():
            return Tokens()
        try:
            with open(self.path, 'r') as f:
                return Tokens.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading token cache {self.path}: {e}")
            return Tokens()

    def save(self, tokens: Tokens):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            f.write(tokens.model_dump_json(indent=2))


def parse_summary(data: Dict[str, Any]) -> List[ThermostatSummary]:
    """Build summary records from the colon separated revision and status lists"""
    statuses: Dict[str, str] = {}
    for entry in data.get("statusList", []):
        identifier, _, running = entry.partition(":")
        statuses[identifier] = running

    summaries = []
    for entry in data.get("revisionList", []):
        fields = entry.split(":")
        if len(fields) < 3:
            raise EcobeeParseError(f"Malformed revision entry {entry!r}")
        summaries.append(ThermostatSummary(
            identifier=fields[0],
            name=fields[1],
            connected=fields[2] == "true",
            equipment_status=EquipmentStatus.from_status_string(statuses.get(fields[0], "")),
        ))
    return summaries


class EcobeeClient:
    """
    Synchronous Ecobee API client.

    Tokens are read from and written to the cache file. The access token is
    refreshed when it is missing or expired, and once more if the API reports
    it expired mid-request. Refreshing is serialized so concurrent scrapes can
    share one client.
    """

    def __init__(
        self,
        api_key: str,
        cache_file: Path,
        timeout: float = 10.0,
        base_url: str = ECOBEE_API_URL,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.store = TokenStore(cache_file)
        self.tokens = self.store.load()
        self._lock = threading.Lock()

    def has_tokens(self) -> bool:
        return bool(self.tokens.access_token or self.tokens.refresh_token)

    # Queries

    def get_thermostats(self, selection: Selection) -> List[Thermostat]:
        """Fetch every page of thermostats matching the selection"""
        thermostats: List[Thermostat] = []
        page = 1
        while True:
            body: Dict[str, Any] = {"selection": selection.to_api()}
            if page > 1:
                body["page"] = {"page": page}
            data = self._get("thermostat", body)
            try:
                thermostats.extend(Thermostat(**t) for t in data.get("thermostatList", []))
            except (TypeError, ValidationError) as e:
                raise EcobeeParseError(f"Invalid thermostat record: {e}") from e

            total_pages = data.get("page", {}).get("totalPages", 1) or 1
            if page >= total_pages:
                return thermostats
            page += 1

    def get_thermostat_summary(self, selection: Selection) -> List[ThermostatSummary]:
        """Fetch revision and equipment status summaries"""
        data = self._get("thermostatSummary", {"selection": selection.to_api()})
        return parse_summary(data)

    # Authorization

    def request_pin(self) -> PinAuthorization:
        """Start PIN authorization; the PIN must then be entered in the Ecobee portal"""
        response = self._send("GET", f"{self.base_url}/authorize", params={
            "response_type": "ecobeePin",
            "client_id": self.api_key,
            "scope": ECOBEE_SCOPE,
        })
        data = self._decode(response)
        if not response.ok:
            raise EcobeeAuthError(f"PIN request rejected: {data.get('error_description') or response.status_code}")
        try:
            return PinAuthorization(**data)
        except ValidationError as e:
            raise EcobeeParseError(f"Invalid PIN response: {e}") from e

    def complete_authorization(self, code: str) -> Tokens:
        """Exchange an accepted PIN authorization code for tokens"""
        data = self._post_token({"grant_type": "ecobeePin", "code": code, "client_id": self.api_key})
        return self._store_tokens(data)

    def refresh_tokens(self) -> Tokens:
        if not self.tokens.refresh_token:
            raise EcobeeAuthError("No refresh token cached; run the authorize command first")
        logger.info("Refreshing Ecobee access token")
        data = self._post_token({
            "grant_type": "refresh_token",
            "code": self.tokens.refresh_token,
            "client_id": self.api_key,
        })
        return self._store_tokens(data)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(EcobeeTransportError),
        reraise=True,
    )
    def _post_token(self, params: Dict[str, str]) -> Dict[str, Any]:
        response = self._send("POST", f"{self.base_url}/token", params=params)
        data = self._decode(response)
        if response.status_code >= 500:
            raise EcobeeTransportError(f"Token endpoint returned HTTP {response.status_code}")
        if not response.ok or "access_token" not in data:
            reason = data.get("error_description") or data.get("error") or response.status_code
            raise EcobeeAuthError(f"Token request rejected: {reason}")
        return data

    def _store_tokens(self, data: Dict[str, Any]) -> Tokens:
        self.tokens = Tokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", self.tokens.refresh_token),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=int(data.get("expires_in", 3600))),
        )
        self.store.save(self.tokens)
        return self.tokens

    def _access_token(self, force_refresh: bool = False) -> str:
        with self._lock:
            if force_refresh or self.tokens.expired():
                self.refresh_tokens()
            return self.tokens.access_token

    # HTTP helpers

    def _get(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """GET a versioned endpoint, refreshing once if the token expired"""
        try:
            return self._get_once(endpoint, body, self._access_token())
        except EcobeeAPIError as e:
            if e.code != TOKEN_EXPIRED_CODE:
                raise
            logger.info("Ecobee reported an expired access token")
        return self._get_once(endpoint, body, self._access_token(force_refresh=True))

    def _get_once(self, endpoint: str, body: Dict[str, Any], token: str) -> Dict[str, Any]:
        response = self._send(
            "GET",
            f"{self.base_url}/{ECOBEE_API_VERSION}/{endpoint}",
            params={"format": "json", "json": json.dumps(body)},
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json;charset=UTF-8",
            },
        )
        data = self._decode(response)
        status = data.get("status") or {}
        code = status.get("code", 0)
        if code:
            raise EcobeeAPIError(code, status.get("message", ""))
        if not response.ok:
            raise EcobeeTransportError(f"Ecobee {endpoint} returned HTTP {response.status_code}")
        return data

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise EcobeeTransportError(f"Error calling {url}: {e}") from e

    @staticmethod
    def _decode(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            if not response.ok:
                raise EcobeeTransportError(f"HTTP {response.status_code} from {response.url}") from e
            raise EcobeeParseError(f"Invalid JSON from {response.url}: {e}") from e
        if not isinstance(data, dict):
            raise EcobeeParseError(f"Unexpected JSON from {response.url}")
        return data
