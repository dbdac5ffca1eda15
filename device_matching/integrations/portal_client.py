"""
HTTP clients for the portal services this package collaborates with:
query templates, matching policies, device search and resource-pool
metadata.

The portal wraps responses as ``{"code": ..., "msg": ..., "data": ...}``;
clients unwrap ``data`` when present and raise ``PortalServiceError`` on
transport failures, non-2xx statuses and malformed payloads.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import requests
from pydantic import ValidationError

from ..core.cache import TtlCache
from ..core.config import Settings, settings as default_settings
from ..core.pagination import clamp_page, clamp_page_size
from ..core.errors import PortalServiceError
from ..schemas.policy import ActionType, MatchingPolicy, PolicyPage, PolicyStatus
from ..schemas.query import (
    DeviceQueryRequest,
    DeviceSearchPage,
    FilterGroup,
    FilterOption,
    QueryTemplate,
    TemplatePage,
)
from ..services.labels import field_labels_from_options
from ..services.policy_resolver import validate_policy

TEMPLATES_PATH = "/device-query/templates"
SEARCH_PATH = "/device-query/query"
FILTER_OPTIONS_PATH = "/device-query/filter-options"
POLICIES_PATH = "/resource-pool/matching-policies"
RESOURCE_POOL_TYPES_PATH = "/resource-pool/types"


def _list_payload(data: Any) -> Dict[str, Any]:
    """Normalize list responses (``list``/``items`` or a bare array) to ``items``."""
    if isinstance(data, list):
        return {"items": data, "total": len(data)}
    if not isinstance(data, dict):
        raise ValueError(f"expected a list payload, got {type(data).__name__}")
    items = data.get("items")
    if items is None:
        items = data.get("list")
    items = items or []
    payload = dict(data)
    payload.pop("list", None)
    payload["items"] = items
    payload.setdefault("total", len(items))
    return payload


class PortalClient:
    """Shared transport for portal service clients."""

    service = "portal"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        api_prefix: Optional[str] = None,
        token: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        session: Optional[requests.Session] = None,
        config: Optional[Settings] = None,
    ) -> None:
        config = config or default_settings
        self.base_url = (base_url or config.portal_base_url).rstrip("/")
        prefix = config.portal_api_prefix if api_prefix is None else api_prefix
        self.api_prefix = "/" + prefix.strip("/") if prefix and prefix.strip("/") else ""
        self.token = token if token is not None else config.portal_api_token
        self.timeout_sec = timeout_sec or config.portal_timeout_sec
        self.session = session or requests.Session()
        self.logger = logging.getLogger("portal_client")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.api_prefix}{path}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None) -> Any:
        url = self._url(path)
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            self.logger.warning("%s %s failed: %s", method, url, exc)
            raise PortalServiceError(self.service, str(exc)) from exc

        if resp.status_code // 100 != 2:
            detail = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = str(body.get("msg") or body.get("error") or body.get("detail") or detail)
            except ValueError:
                pass
            self.logger.warning("%s %s returned %s: %s", method, url, resp.status_code, detail)
            raise PortalServiceError(self.service, detail, status_code=resp.status_code)

        if not resp.content:
            return None
        try:
            body = resp.json()
        except ValueError as exc:
            raise PortalServiceError(self.service, f"invalid JSON body: {exc}", status_code=resp.status_code) from exc
        if isinstance(body, dict) and "data" in body and ("code" in body or "msg" in body):
            return body["data"]
        return body

    def _parse(self, model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise PortalServiceError(self.service, f"unexpected payload: {exc}") from exc


class QueryTemplateClient(PortalClient):
    """Query template CRUD. Reads are cached and always return a deep copy."""

    service = "query-template"

    def __init__(self, *args, cache: Optional[TtlCache[QueryTemplate]] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        config = kwargs.get("config") or default_settings
        self.cache = cache if cache is not None else TtlCache(config.template_cache_ttl_sec)

    def list(self, page: int = 1, size: int = 10) -> TemplatePage:
        params = {"page": clamp_page(page), "size": clamp_page_size(size)}
        data = self._request("GET", TEMPLATES_PATH, params=params)
        try:
            payload = _list_payload(data)
        except ValueError as exc:
            raise PortalServiceError(self.service, str(exc)) from exc
        return self._parse(TemplatePage, payload)

    def get(self, template_id: int) -> QueryTemplate:
        cached = self.cache.get(template_id)
        if cached is not None:
            template, _ = cached
            return template.model_copy(deep=True)
        data = self._request("GET", f"{TEMPLATES_PATH}/{template_id}")
        template = self._parse(QueryTemplate, data)
        self.cache.put(template_id, template)
        return template.model_copy(deep=True)

    def create(self, template: QueryTemplate) -> QueryTemplate:
        payload = template.to_wire()
        payload.pop("id", None)
        data = self._request("POST", TEMPLATES_PATH, json=payload)
        return self._saved(template, data)

    def update(self, template: QueryTemplate) -> QueryTemplate:
        if not template.id:
            raise ValueError("template id is required for update")
        self.cache.invalidate(template.id)
        data = self._request("POST", TEMPLATES_PATH, json=template.to_wire())
        return self._saved(template, data)

    def delete(self, template_id: int) -> None:
        self.cache.invalidate(template_id)
        self._request("DELETE", f"{TEMPLATES_PATH}/{template_id}")

    def _saved(self, template: QueryTemplate, data: Any) -> QueryTemplate:
        # The portal answers saves with the stored template or just a message.
        if isinstance(data, dict) and data.get("name"):
            return self._parse(QueryTemplate, data)
        return template.model_copy(deep=True)


class MatchingPolicyClient(PortalClient):
    service = "matching-policy"

    def list(self, page: int = 1, size: int = 10) -> PolicyPage:
        params = {"page": clamp_page(page), "size": clamp_page_size(size)}
        data = self._request("GET", POLICIES_PATH, params=params)
        try:
            payload = _list_payload(data)
        except ValueError as exc:
            raise PortalServiceError(self.service, str(exc)) from exc
        return self._parse(PolicyPage, payload)

    def get(self, policy_id: int) -> MatchingPolicy:
        return self._parse(MatchingPolicy, self._request("GET", f"{POLICIES_PATH}/{policy_id}"))

    def list_by_type(self, resource_pool_type: str, action_type: Union[ActionType, str]) -> List[MatchingPolicy]:
        action = action_type.value if isinstance(action_type, ActionType) else str(action_type)
        params = {"resourcePoolType": resource_pool_type, "actionType": action}
        data = self._request("GET", f"{POLICIES_PATH}/by-type", params=params)
        try:
            items = _list_payload(data or [])["items"]
        except ValueError as exc:
            raise PortalServiceError(self.service, str(exc)) from exc
        return [self._parse(MatchingPolicy, item) for item in items]

    def create(self, policy: MatchingPolicy) -> MatchingPolicy:
        validate_policy(policy)
        payload = self._write_payload(policy)
        payload.pop("id", None)
        return self._saved(policy, self._request("POST", POLICIES_PATH, json=payload))

    def update(self, policy: MatchingPolicy) -> MatchingPolicy:
        if not policy.id:
            raise ValueError("policy id is required for update")
        validate_policy(policy)
        data = self._request("PUT", f"{POLICIES_PATH}/{policy.id}", json=self._write_payload(policy))
        return self._saved(policy, data)

    def update_status(self, policy_id: int, status: Union[PolicyStatus, str]) -> None:
        value = PolicyStatus(status).value
        self._request("PUT", f"{POLICIES_PATH}/{policy_id}/status", json={"status": value})

    def delete(self, policy_id: int) -> None:
        self._request("DELETE", f"{POLICIES_PATH}/{policy_id}")

    @staticmethod
    def _write_payload(policy: MatchingPolicy) -> Dict[str, Any]:
        # Groups live on the template; the policy only references it.
        payload = policy.to_wire()
        for key in ("queryGroups", "queryTemplate", "createdAt", "updatedAt"):
            payload.pop(key, None)
        return payload

    def _saved(self, policy: MatchingPolicy, data: Any) -> MatchingPolicy:
        if isinstance(data, dict) and data.get("name"):
            return self._parse(MatchingPolicy, data)
        return policy.model_copy(deep=True)


class DeviceSearchClient(PortalClient):
    service = "device-search"

    def __init__(self, *args, options_cache: Optional[TtlCache[Dict[str, str]]] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        config = kwargs.get("config") or default_settings
        self.options_cache = (
            options_cache if options_cache is not None else TtlCache(config.filter_options_cache_ttl_sec)
        )

    def search(self, groups: Sequence[FilterGroup], page: int = 1, size: int = 10) -> DeviceSearchPage:
        request = DeviceQueryRequest(groups=list(groups), page=clamp_page(page), size=clamp_page_size(size))
        data = self._request("POST", SEARCH_PATH, json=request.to_wire())
        try:
            payload = _list_payload(data or {})
        except ValueError as exc:
            raise PortalServiceError(self.service, str(exc)) from exc
        payload.setdefault("page", request.page)
        payload.setdefault("size", request.size)
        return self._parse(DeviceSearchPage, payload)

    def filter_options(self) -> Dict[str, str]:
        """Device field -> display name, from the portal's ``deviceFields`` options."""
        cached = self.options_cache.get(FILTER_OPTIONS_PATH)
        if cached is not None:
            return dict(cached[0])
        data = self._request("GET", FILTER_OPTIONS_PATH)
        raw = data.get("deviceFields") if isinstance(data, dict) else None
        options = [self._parse(FilterOption, item) for item in raw or []]
        labels = field_labels_from_options(options)
        self.options_cache.put(FILTER_OPTIONS_PATH, labels)
        return dict(labels)


class ResourcePoolClient(PortalClient):
    service = "resource-pool"

    def list_types(self) -> List[str]:
        data = self._request("GET", RESOURCE_POOL_TYPES_PATH)
        if isinstance(data, dict):
            data = data.get("items") or data.get("list") or data.get("types")
        if not isinstance(data, list):
            raise PortalServiceError(self.service, "expected a list of resource pool types")
        return [str(item).strip() for item in data if str(item).strip()]
