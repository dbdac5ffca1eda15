import json

import pytest
import requests

from device_matching.core.cache import TtlCache
from device_matching.core.config import Settings
from device_matching.core.errors import PolicyValidationError, PortalServiceError
from device_matching.integrations.portal_client import (
    DeviceSearchClient,
    MatchingPolicyClient,
    QueryTemplateClient,
    ResourcePoolClient,
)
from device_matching.schemas.policy import ActionType, MatchingPolicy, PolicyStatus
from device_matching.schemas.query import ConditionType, FilterBlock, FilterGroup, QueryTemplate


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error:
            raise self.error
        return self.responses.pop(0)


def _config(**kwargs) -> Settings:
    defaults = dict(portal_base_url="http://portal.test/", portal_api_token="secret")
    defaults.update(kwargs)
    return Settings(**defaults)


def _envelope(data):
    return {"code": 200, "msg": "success", "data": data}


def _template_payload(template_id=7):
    return {
        "id": template_id,
        "name": "arm",
        "groups": [
            {
                "id": "g1",
                "operator": "and",
                "blocks": [
                    {"id": "b1", "type": "device", "key": "cpuArch", "conditionType": "equal", "value": "arm", "operator": "and"}
                ],
            }
        ],
    }


def test_request_builds_url_headers_and_unwraps_envelope():
    session = FakeSession(FakeResponse(body=_envelope(_template_payload())))
    client = QueryTemplateClient(session=session, config=_config())

    template = client.get(7)

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://portal.test/fe-v1/device-query/templates/7"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["timeout"] == 10.0
    assert template.groups[0].blocks[0].attribute == "cpuArch"


def test_template_get_is_cached_and_cloned_on_read():
    session = FakeSession(FakeResponse(body=_envelope(_template_payload())))
    client = QueryTemplateClient(session=session, config=_config(), cache=TtlCache(60))

    first = client.get(7)
    first.groups[0].blocks[0].value = "x86"
    second = client.get(7)

    assert len(session.calls) == 1
    assert second.groups[0].blocks[0].value == "arm"


def test_template_update_and_delete_invalidate_cache():
    session = FakeSession(
        FakeResponse(body=_envelope(_template_payload())),
        FakeResponse(body=_envelope(None)),
        FakeResponse(body=_envelope(_template_payload())),
        FakeResponse(body=_envelope(None)),
    )
    client = QueryTemplateClient(session=session, config=_config(), cache=TtlCache(60))

    template = client.get(7)
    saved = client.update(template)
    assert saved.id == 7
    assert session.calls[1]["method"] == "POST"
    assert session.calls[1]["json"]["id"] == 7
    client.get(7)
    assert len(session.calls) == 3
    client.delete(7)
    assert len(client.cache) == 0


def test_template_create_strips_id():
    session = FakeSession(FakeResponse(body=_envelope({"id": 9, "name": "new"})))
    client = QueryTemplateClient(session=session, config=_config())
    created = client.create(QueryTemplate(id=3, name="new"))
    assert "id" not in session.calls[0]["json"]
    assert created.id == 9


def test_template_list_accepts_list_key():
    body = _envelope({"list": [_template_payload(1), _template_payload(2)], "total": 2})
    client = QueryTemplateClient(session=FakeSession(FakeResponse(body=body)), config=_config())
    page = client.list(page=0, size=5000)
    assert [t.id for t in page.items] == [1, 2]
    assert page.total == 2


def test_list_clamps_pagination(monkeypatch):
    monkeypatch.setenv("API_MAX_PAGE_SIZE", "50")
    session = FakeSession(FakeResponse(body=_envelope({"list": [], "total": 0})))
    MatchingPolicyClient(session=session, config=_config()).list(page=-1, size=500)
    assert session.calls[0]["params"] == {"page": 1, "size": 50}


def test_transport_error_raises_portal_service_error():
    session = FakeSession(error=requests.ConnectionError("refused"))
    client = ResourcePoolClient(session=session, config=_config())
    with pytest.raises(PortalServiceError) as excinfo:
        client.list_types()
    assert excinfo.value.service == "resource-pool"
    assert excinfo.value.status_code is None


def test_non_2xx_uses_portal_message():
    session = FakeSession(FakeResponse(status_code=500, body={"code": 500, "msg": "db down"}))
    client = MatchingPolicyClient(session=session, config=_config())
    with pytest.raises(PortalServiceError) as excinfo:
        client.get(1)
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "db down"


def test_malformed_body_raises():
    session = FakeSession(FakeResponse(text="<html>oops</html>"))
    client = DeviceSearchClient(session=session, config=_config())
    with pytest.raises(PortalServiceError):
        client.search([])


def test_unexpected_payload_raises():
    session = FakeSession(FakeResponse(body=_envelope({"name": "x", "groups": "nope"})))
    client = QueryTemplateClient(session=session, config=_config())
    with pytest.raises(PortalServiceError):
        client.get(1)


def test_policy_list_by_type_sends_query_params():
    policy = {"id": 1, "name": "p", "resourcePoolType": "compute", "actionType": "pool_entry", "queryTemplateId": 7}
    session = FakeSession(FakeResponse(body=_envelope([policy])))
    client = MatchingPolicyClient(session=session, config=_config())

    policies = client.list_by_type("compute", ActionType.POOL_ENTRY)

    assert session.calls[0]["url"].endswith("/resource-pool/matching-policies/by-type")
    assert session.calls[0]["params"] == {"resourcePoolType": "compute", "actionType": "pool_entry"}
    assert policies[0].query_template_id == 7


def test_policy_create_validates_before_network():
    session = FakeSession()
    client = MatchingPolicyClient(session=session, config=_config())
    with pytest.raises(PolicyValidationError):
        client.create(MatchingPolicy(name="p", resource_pool_type="compute"))
    assert session.calls == []


def test_policy_update_and_status():
    session = FakeSession(FakeResponse(body=_envelope(None)), FakeResponse(body=_envelope(None)))
    client = MatchingPolicyClient(session=session, config=_config())
    policy = MatchingPolicy(
        id=4,
        name="p",
        resource_pool_type="compute",
        action_type=ActionType.POOL_EXIT,
        query_template_id=7,
        query_groups=[FilterGroup()],
    )
    client.update(policy)
    client.update_status(4, PolicyStatus.DISABLED)

    assert session.calls[0]["method"] == "PUT"
    assert session.calls[0]["url"].endswith("/resource-pool/matching-policies/4")
    assert "queryGroups" not in session.calls[0]["json"]
    assert session.calls[1]["json"] == {"status": "disabled"}


def test_search_sends_groups_verbatim():
    body = _envelope({"list": [{"id": 1, "ciCode": "web-01", "idc": "sh"}], "total": 1})
    session = FakeSession(FakeResponse(body=body))
    client = DeviceSearchClient(session=session, config=_config())
    block = FilterBlock(field="role", key="role", condition_type=ConditionType.IN, value=["a", "b"])

    page = client.search([FilterGroup(blocks=[block])], page=1, size=20)

    sent = session.calls[0]["json"]
    assert session.calls[0]["url"].endswith("/device-query/query")
    assert sent["groups"][0]["blocks"][0]["value"] == ["a", "b"]
    assert sent["groups"][0]["blocks"][0]["conditionType"] == "in"
    assert sent["size"] == 20
    assert page.items[0].ci_code == "web-01"
    assert (page.page, page.size, page.total) == (1, 20, 1)


def test_filter_options_are_cached():
    options = {"deviceFields": [{"id": "1", "label": "CPU架构", "value": "cpuArch"}, {"id": "2", "label": "", "value": "x"}]}
    session = FakeSession(FakeResponse(body=_envelope(options)))
    client = DeviceSearchClient(session=session, config=_config(), options_cache=TtlCache(60))

    assert client.filter_options() == {"cpuArch": "CPU架构"}
    assert client.filter_options() == {"cpuArch": "CPU架构"}
    assert len(session.calls) == 1


def test_resource_pool_types():
    session = FakeSession(FakeResponse(body=_envelope(["compute", " storage ", ""])))
    client = ResourcePoolClient(session=session, config=_config(portal_api_prefix=""))
    assert client.list_types() == ["compute", "storage"]
    assert session.calls[0]["url"] == "http://portal.test/resource-pool/types"
