"""PrivX vault REST client."""
import logging
import threading
from typing import Any, Dict, Optional, Sequence, Union
from urllib.parse import quote

import requests

from .errors import VaultError, is_already_exists
from .models import RoleHandle, SecretDocument, SecretPage

logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/api/v1/oauth/token"
SECRETS_PATH = "/vault/api/v1/secrets"


def _error_message(response: requests.Response) -> str:
    """Pull PrivX's error text out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error_message", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.text.strip() or response.reason or "unknown error"


class PrivXVault:
    """
    Thin wrapper around the PrivX vault API.

    Authenticates with OAuth: the OAuth client id/secret go in HTTP basic
    auth; when API client credentials are configured they are sent as a
    password grant, otherwise a client_credentials grant is used. The access
    token is fetched on first use, shared between threads, and refreshed
    once if the API returns 401.
    """

    def __init__(
        self,
        server: str,
        oauth_client_id: str,
        oauth_client_secret: str,
        api_client_id: Optional[str] = None,
        api_client_secret: Optional[str] = None,
        timeout: float = 30.0,
        verify: Union[bool, str] = True,
        session: Optional[requests.Session] = None,
    ):
        self.server = server.rstrip("/")
        self.timeout = timeout
        self.verify = verify
        self._oauth_client_id = oauth_client_id
        self._oauth_client_secret = oauth_client_secret
        self._api_client_id = api_client_id
        self._api_client_secret = api_client_secret
        self._session = session or requests.Session()
        self._token: Optional[str] = None
        self._token_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        return self._session

    def _url(self, path: str) -> str:
        return f"{self.server}{path}"

    def _secret_url(self, name: str) -> str:
        return self._url(f"{SECRETS_PATH}/{quote(name, safe='')}")

    def _fetch_token(self) -> str:
        if self._api_client_id and self._api_client_secret:
            form = {
                "grant_type": "password",
                "username": self._api_client_id,
                "password": self._api_client_secret,
            }
        else:
            form = {"grant_type": "client_credentials"}

        url = self._url(TOKEN_PATH)
        try:
            response = self.session.post(
                url,
                data=form,
                auth=(self._oauth_client_id, self._oauth_client_secret),
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.exceptions.RequestException as e:
            raise VaultError(f"PrivX authentication request to {url} failed: {e}") from e

        if not response.ok:
            raise VaultError(
                f"PrivX authentication failed: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise VaultError("PrivX authentication response carried no access token") from e

        logger.debug(f"Obtained PrivX access token from {self.server}")
        return token

    @property
    def token(self) -> str:
        with self._token_lock:
            if self._token is None:
                self._token = self._fetch_token()
            return self._token

    def _discard_token(self, rejected: str) -> None:
        # Another thread may already have replaced the rejected token
        with self._token_lock:
            if self._token == rejected:
                self._token = None

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        for attempt in range(2):
            token = self.token
            headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
            try:
                response = self.session.request(
                    method, url, headers=headers, timeout=self.timeout, verify=self.verify, **kwargs
                )
            except requests.exceptions.RequestException as e:
                raise VaultError(f"PrivX {method} {url} failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                logger.debug("PrivX rejected the access token, fetching a new one")
                self._discard_token(token)
                continue
            break

        if not response.ok:
            raise VaultError(
                f"PrivX {method} {url} failed: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise VaultError(f"PrivX returned invalid JSON: {e}") from e

    def get_document(self, name: str) -> SecretDocument:
        """Fetch one secret with its data."""
        body = self._json(self._request("GET", self._secret_url(name)))
        if not isinstance(body, dict):
            raise VaultError(f"PrivX returned an unexpected secret payload for {name}")
        return SecretDocument(name=body.get("name", name), data=body.get("data"))

    def list_documents(self, offset: int, limit: int) -> SecretPage:
        """Fetch one page of the secret listing. Items carry names only."""
        response = self._request(
            "GET", self._url(SECRETS_PATH), params={"offset": offset, "limit": limit}
        )
        body = self._json(response)
        if not isinstance(body, dict):
            raise VaultError("PrivX returned an unexpected secret listing payload")

        items = []
        for item in body.get("items") or []:
            if not isinstance(item, dict) or not item.get("name"):
                raise VaultError(f"PrivX returned a secret listing item without a name at offset {offset}")
            items.append(SecretDocument(name=item["name"]))
        return SecretPage(items=items, count=body.get("count", len(items)))

    def create_or_replace_document(
        self,
        name: str,
        read_roles: Sequence[RoleHandle],
        write_roles: Sequence[RoleHandle],
        fields: Dict[str, Any],
    ) -> None:
        """Create a secret, replacing the existing one if the name is taken."""
        body = {
            "name": name,
            "read_roles": [role.to_dict() for role in read_roles],
            "write_roles": [role.to_dict() for role in write_roles],
            "data": fields,
        }
        try:
            self._request("POST", self._url(SECRETS_PATH), json=body)
            return
        except VaultError as e:
            if not is_already_exists(e):
                raise
            logger.debug(f"Secret {name} already exists, replacing it")

        self._request("PUT", self._secret_url(name), json=body)

    def delete_document(self, name: str) -> None:
        self._request("DELETE", self._secret_url(name))
