"""Cloudflare D1 REST API client."""

import logging
import typing as t

import requests
import simplejson as json


D1_API_BASE_URL: str = "https://api.cloudflare.com/client/v4"


class D1APIError(Exception):
    """Raised when a D1 request fails or reports success: false."""

    def __init__(
        self,
        message: str,
        status_code: t.Optional[int] = None,
        errors: t.Optional[t.Sequence[t.Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors: t.List[t.Any] = list(errors or [])


class D1ImportFailed(D1APIError):
    """The bulk import reached the failed terminal status."""


class D1ImportTimeout(D1APIError):
    """The bulk import did not reach a terminal status before the deadline."""


class ImportSession(t.NamedTuple):
    """What the import init/ingest actions hand back."""

    upload_url: t.Optional[str]
    bookmark: t.Optional[str]
    filename: t.Optional[str]
    status: t.Optional[str]


class CloudflareD1:
    """Thin typed wrapper around the D1 query, raw and import endpoints."""

    def __init__(
        self,
        account_id: str,
        api_token: str,
        database_id: str,
        timeout: float = 30,
        session: t.Optional[requests.Session] = None,
        logger: t.Optional[logging.Logger] = None,
    ) -> None:
        """Constructor."""
        if not account_id:
            raise ValueError("Please provide a Cloudflare account ID")
        if not api_token:
            raise ValueError("Please provide a Cloudflare API token")
        if not database_id:
            raise ValueError("Please provide a D1 database ID")

        self._account_id = account_id
        self._database_id = database_id
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            }
        )

    @property
    def url(self) -> str:
        return f"{D1_API_BASE_URL}/accounts/{self._account_id}/d1/database/{self._database_id}"

    def _request(self, method: str, endpoint: str = "", payload: t.Optional[t.Dict[str, t.Any]] = None) -> t.Any:
        try:
            response: requests.Response = self._session.request(
                method,
                self.url + endpoint,
                data=json.dumps(payload) if payload is not None else None,
                timeout=self._timeout,
            )
        except requests.RequestException as err:
            raise D1APIError(f"D1 request to {endpoint or '/'} failed: {err}") from err

        try:
            body: t.Any = response.json()
        except ValueError:
            body = None

        errors: t.List[t.Any] = list(body.get("errors") or []) if isinstance(body, dict) else []

        if not response.ok:
            message: str = f"HTTP Error {response.status_code}"
            if errors:
                message += f": {json.dumps(errors[0])}"
            elif body is not None:
                message += f": {json.dumps(body)}"
            else:
                message += f": {response.reason}"
            raise D1APIError(message, status_code=response.status_code, errors=errors)

        if not isinstance(body, dict) or not body.get("success", False):
            raise D1APIError(
                f"D1 request to {endpoint or '/'} was not successful: {json.dumps(body)}",
                status_code=response.status_code,
                errors=errors,
            )

        return body.get("result")

    def database_info(self) -> t.Dict[str, t.Any]:
        """Fetch the database resource (name, uuid, version, ...)."""
        return self._request("GET") or {}

    def query(self, sql: str, params: t.Optional[t.Sequence[t.Any]] = None) -> t.List[t.Dict[str, t.Any]]:
        """Run SQL through /query; rows come back as objects."""
        payload: t.Dict[str, t.Any] = {"sql": sql}
        if params:
            payload["params"] = list(params)
        return self._request("POST", "/query", payload) or []

    def raw(self, sql: str, params: t.Optional[t.Sequence[t.Any]] = None) -> t.List[t.Dict[str, t.Any]]:
        """Run one or more statements through /raw; rows come back as arrays."""
        payload: t.Dict[str, t.Any] = {"sql": sql}
        if params:
            payload["params"] = list(params)
        return self._request("POST", "/raw", payload) or []

    def raw_rows(self, sql: str) -> t.List[t.List[t.Any]]:
        """Rows of the first result set of a /raw call."""
        results: t.List[t.Dict[str, t.Any]] = self.raw(sql)
        if not results:
            return []
        return list((results[0].get("results") or {}).get("rows") or [])

    @staticmethod
    def _import_session(result: t.Optional[t.Dict[str, t.Any]]) -> ImportSession:
        result = result or {}
        return ImportSession(
            upload_url=result.get("upload_url") or result.get("url"),
            bookmark=result.get("at_bookmark"),
            filename=result.get("filename"),
            status=result.get("status"),
        )

    def import_init(self, etag: str) -> ImportSession:
        """Announce an upload identified by the MD5 checksum of its content."""
        return self._import_session(self._request("POST", "/import", {"action": "init", "etag": etag}))

    def import_upload(self, upload_url: str, content: bytes) -> None:
        """PUT the statement stream to the pre-signed upload URL."""
        try:
            response: requests.Response = requests.put(
                upload_url,
                data=content,
                headers={"Content-Type": "application/sql", "Content-Length": str(len(content))},
                timeout=self._timeout,
            )
        except requests.RequestException as err:
            raise D1APIError(f"D1 import upload failed: {err}") from err
        if not response.ok:
            raise D1APIError(
                f"D1 import upload failed: HTTP Error {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )

    def import_ingest(self, etag: str, filename: str) -> ImportSession:
        """Tell D1 to start ingesting an uploaded file."""
        return self._import_session(
            self._request("POST", "/import", {"action": "ingest", "etag": etag, "filename": filename})
        )

    def import_poll(self, bookmark: t.Optional[str]) -> t.Dict[str, t.Any]:
        """Fetch the current state of an import."""
        return self._request("POST", "/import", {"action": "poll", "current_bookmark": bookmark}) or {}

    def close(self) -> None:
        self._session.close()
