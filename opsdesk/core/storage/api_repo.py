from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from opsdesk.core.config import Settings, get_settings
from opsdesk.core.errors import ApiError

log = logging.getLogger(__name__)

Params = Mapping[str, Any]


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Message JSON du serveur tel quel ; sinon le message générique de l'appelant."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    for k in ("message", "error"):
        msg = body.get(k)
        if isinstance(msg, str) and msg.strip():
            return msg
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and first.get("msg"):
            return str(first["msg"])
    return fallback


def _clean_params(params: Optional[Params]) -> Dict[str, Any]:
    return {k: v for k, v in (params or {}).items() if v is not None}


class ApiClient:
    """
    Client HTTP unique (httpx) : base URL, JSON, jeton Bearer de la session.
    Pas de retry : chaque échec remonte en ApiError.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        on_auth_failure: Optional[Callable[[], None]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.token: Optional[str] = None
        self.on_auth_failure = on_auth_failure
        self._http = httpx.Client(
            base_url=self.settings.api_url.rstrip("/"),
            timeout=self.settings.timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    # ---------------- bas niveau ---------------- #

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _send(self, method: str, path: str, *, params: Optional[Params], json: Any, fallback: str) -> httpx.Response:
        log.debug("%s %s", method, path)
        try:
            response = self._http.request(
                method, path, params=_clean_params(params), json=json, headers=self._headers()
            )
        except httpx.HTTPError as e:
            log.warning("%s %s: %s", method, path, e)
            raise ApiError(fallback) from e

        if response.is_error:
            message = _error_message(response, fallback)
            log.warning("%s %s -> %s: %s", method, path, response.status_code, message)
            if response.status_code in (401, 403):
                self.token = None
                if self.on_auth_failure:
                    self.on_auth_failure()
            raise ApiError(message, status_code=response.status_code, payload=response.content)
        return response

    def request(self, method: str, path: str, *, params: Optional[Params] = None, json: Any = None,
                fallback: str = "Request failed") -> Any:
        response = self._send(method, path, params=params, json=json, fallback=fallback)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(fallback, status_code=response.status_code) from e

    def request_bytes(self, method: str, path: str, *, params: Optional[Params] = None,
                      fallback: str = "Request failed") -> bytes:
        return self._send(method, path, params=params, json=None, fallback=fallback).content

    def url_for(self, path: str) -> str:
        return f"{self.settings.api_url.rstrip('/')}/{path.lstrip('/')}"

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class ApiRepository:
    """
    Même forme que l'ancien repo JSON (list/get/add/update/delete),
    mais adossée à une ressource REST : /<resource>, /<resource>/<id>.
    """

    def __init__(self, client: ApiClient, resource: str, collection_key: str, record_key: str,
                 entity_name: Optional[str] = None) -> None:
        self.client = client
        self.resource = resource.strip("/")
        self.collection_key = collection_key
        self.record_key = record_key
        self.entity_name = entity_name or record_key

    # ---------------- Helpers ---------------- #

    def _path(self, *parts: Any) -> str:
        return "/".join([self.resource, *(str(p).strip("/") for p in parts)])

    def unwrap(self, body: Any) -> Dict[str, Any]:
        # {"invoice": {...}, "message": "..."} ou directement l'objet
        if isinstance(body, dict) and isinstance(body.get(self.record_key), dict):
            return body[self.record_key]
        return body if isinstance(body, dict) else {}

    def _rows(self, body: Any, key: Optional[str] = None) -> List[Dict[str, Any]]:
        key = key or self.collection_key
        rows = body.get(key, []) if isinstance(body, dict) else body
        if not isinstance(rows, list):
            return []
        return [r for r in rows if isinstance(r, dict)]

    # ---------------- CRUD ---------------- #

    def list_page(self, page: int, limit: int, params: Optional[Params] = None,
                  fallback: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        q = {"page": page, "limit": limit, **(params or {})}
        body = self.client.request("GET", self.resource, params=q,
                                   fallback=fallback or f"Failed to load {self.collection_key}")
        pagination = body.get("pagination") if isinstance(body, dict) else None
        return self._rows(body), (pagination if isinstance(pagination, dict) else {})

    def list_all(self, *parts: Any, key: Optional[str] = None, params: Optional[Params] = None,
                 fallback: Optional[str] = None) -> List[Dict[str, Any]]:
        body = self.client.request("GET", self._path(*parts), params=params,
                                   fallback=fallback or f"Failed to load {self.collection_key}")
        return self._rows(body, key)

    def get_by_id(self, obj_id: Any, fallback: Optional[str] = None) -> Dict[str, Any]:
        body = self.client.request("GET", self._path(obj_id),
                                   fallback=fallback or f"Failed to load {self.entity_name}")
        return self.unwrap(body)

    def add(self, payload: Mapping[str, Any], fallback: Optional[str] = None) -> Dict[str, Any]:
        body = self.client.request("POST", self.resource, json=dict(payload),
                                   fallback=fallback or f"Failed to create {self.entity_name}")
        return self.unwrap(body)

    def update(self, obj_id: Any, payload: Mapping[str, Any], fallback: Optional[str] = None) -> Dict[str, Any]:
        if obj_id is None:
            raise ValueError(f"Cannot update {self.entity_name} without id")
        body = self.client.request("PUT", self._path(obj_id), json=dict(payload),
                                   fallback=fallback or f"Failed to update {self.entity_name}")
        return self.unwrap(body)

    def delete(self, obj_id: Any, fallback: Optional[str] = None) -> bool:
        self.client.request("DELETE", self._path(obj_id),
                            fallback=fallback or f"Failed to delete {self.entity_name}")
        return True

    # ---------------- Actions ---------------- #

    def post_action(self, *parts: Any, payload: Optional[Mapping[str, Any]] = None,
                    fallback: str = "Request failed") -> Any:
        return self.client.request("POST", self._path(*parts),
                                   json=dict(payload) if payload is not None else None, fallback=fallback)

    def get_json(self, *parts: Any, params: Optional[Params] = None, fallback: str = "Request failed") -> Any:
        return self.client.request("GET", self._path(*parts), params=params, fallback=fallback)

    def get_bytes(self, *parts: Any, fallback: str = "Request failed") -> bytes:
        return self.client.request_bytes("GET", self._path(*parts), fallback=fallback)

    def url(self, *parts: Any) -> str:
        return self.client.url_for(self._path(*parts))
