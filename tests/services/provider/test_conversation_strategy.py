import json
from datetime import datetime, timezone

import httpx
import pytest

from mlclassroom.core.enums import ClassifierStatus, ProjectType, ServiceType
from mlclassroom.core.exceptions import (
    InsufficientCapacityException,
    ProviderAuthException,
    RemoteModelMissingException,
)
from mlclassroom.core.training_types import (
    ClassifierRecord,
    Credentials,
    Project,
    TestPayload,
)
from mlclassroom.services.provider import ConversationStrategy

CREDENTIALS = Credentials(
    id="creds1",
    class_id="classid",
    service_type=ServiceType.CONVERSATION,
    url="https://gateway.watsonplatform.net/conversation/api",
    username="user",
    password="pass",
)
PROJECT = Project(
    id="project1", class_id="classid", user_id="userid", type=ProjectType.TEXT, name="my project"
)
CREATED = datetime(2018, 9, 20, 10, 0, tzinfo=timezone.utc)


def _record(classifier_id: str = "ws1", status: ClassifierStatus = ClassifierStatus.TRAINING) -> ClassifierRecord:
    return ClassifierRecord(
        id=f"rec-{classifier_id}",
        project_id=PROJECT.id,
        project_type=ProjectType.TEXT,
        classifier_id=classifier_id,
        name=PROJECT.name,
        created=CREATED,
        updated=CREATED,
        status=status,
        credentials_id=CREDENTIALS.id,
    )


def _strategy(handler) -> ConversationStrategy:  # type: ignore[no-untyped-def]
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ConversationStrategy(http_client=client)


@pytest.mark.asyncio
async def test_train_creates_workspace() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json={
                "workspace_id": "ws-new",
                "name": "my project",
                "language": "en",
                "created": "2018-09-20T10:00:00.000Z",
                "updated": "2018-09-20T10:00:00.000Z",
            },
        )

    record = await _strategy(handler).train(PROJECT, CREDENTIALS, expiry_hours=24)

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/conversation/api/v1/workspaces"
    assert request.url.params["version"] == "2018-09-20"
    assert request.headers["authorization"].startswith("Basic ")
    body = json.loads(request.content)
    assert body["name"] == "my project"
    assert body["metadata"]["projectid"] == "project1"

    assert record.classifier_id == "ws-new"
    assert record.status is ClassifierStatus.TRAINING
    assert record.credentials_id == "creds1"
    assert record.created == CREATED
    assert record.expiry == datetime(2018, 9, 21, 10, 0, tzinfo=timezone.utc)
    assert record.url is not None and record.url.endswith("/v1/workspaces/ws-new")


@pytest.mark.asyncio
async def test_train_updates_existing_workspace_in_place() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"updated": "2018-09-21T08:00:00.000Z"})

    existing = _record("ws-old", ClassifierStatus.AVAILABLE)
    record = await _strategy(handler).train(PROJECT, CREDENTIALS, existing=existing, expiry_hours=1)

    assert seen[0].url.path.endswith("/v1/workspaces/ws-old")
    assert record.id == existing.id
    assert record.classifier_id == "ws-old"
    assert record.status is ClassifierStatus.TRAINING
    assert record.updated == datetime(2018, 9, 21, 8, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_train_capacity_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Maximum workspaces limit exceeded. Limit = 5"})

    with pytest.raises(InsufficientCapacityException):
        await _strategy(handler).train(PROJECT, CREDENTIALS)


@pytest.mark.asyncio
async def test_train_rejected_credentials() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Unauthorized"})

    with pytest.raises(ProviderAuthException):
        await _strategy(handler).train(PROJECT, CREDENTIALS)


@pytest.mark.asyncio
async def test_query_statuses_merges_and_marks_missing_unknown() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/ws-good"):
            return httpx.Response(
                200, json={"status": "Available", "updated": "2018-09-20T11:00:00.000Z"}
            )
        if request.url.path.endswith("/ws-gone"):
            return httpx.Response(404, json={"error": "Resource not found"})
        return httpx.Response(500, json={"error": "internal"})

    records = [_record("ws-good"), _record("ws-gone"), _record("ws-broken")]
    refreshed = await _strategy(handler).query_statuses(
        "classid", records, {CREDENTIALS.id: CREDENTIALS}
    )
    by_id = {r.classifier_id: r for r in refreshed}

    assert by_id["ws-good"].status is ClassifierStatus.AVAILABLE
    assert by_id["ws-good"].updated == datetime(2018, 9, 20, 11, 0, tzinfo=timezone.utc)
    assert by_id["ws-gone"].status is ClassifierStatus.UNKNOWN
    assert by_id["ws-broken"].status is ClassifierStatus.TRAINING
    assert by_id["ws-broken"].updated == CREATED


@pytest.mark.asyncio
async def test_query_statuses_without_credentials() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    refreshed = await _strategy(handler).query_statuses("classid", [_record()], {})
    assert refreshed[0].status is ClassifierStatus.UNKNOWN


@pytest.mark.asyncio
async def test_query_statuses_skips_settled_records() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    failed = _record("ws-failed", ClassifierStatus.FAILED)
    refreshed = await _strategy(handler).query_statuses(
        "classid", [failed], {CREDENTIALS.id: CREDENTIALS}
    )
    assert refreshed == [failed]


@pytest.mark.asyncio
async def test_test_preserves_intent_order() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "intents": [
                    {"intent": "first", "confidence": 0.8},
                    {"intent": "second", "confidence": 0.15},
                    {"intent": "third", "confidence": 0.05},
                ]
            },
        )

    record = _record()
    results = await _strategy(handler).test(CREDENTIALS, record, TestPayload(text="my test text"))

    body = json.loads(seen[0].content)
    assert seen[0].url.path.endswith("/v1/workspaces/ws1/message")
    assert body == {"input": {"text": "my test text"}, "alternate_intents": True}
    assert [(c.class_name, c.confidence) for c in results] == [
        ("first", 0.8),
        ("second", 0.15),
        ("third", 0.05),
    ]
    assert all(c.classifier_timestamp == record.updated for c in results)


@pytest.mark.asyncio
async def test_test_missing_workspace() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Workspace not found"})

    with pytest.raises(RemoteModelMissingException):
        await _strategy(handler).test(CREDENTIALS, _record(), TestPayload(text="hi"))


@pytest.mark.asyncio
async def test_delete_is_idempotent() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(404, json={"error": "not found"})

    await _strategy(handler).delete(CREDENTIALS, "ws1")
    assert calls == ["DELETE"]


@pytest.mark.asyncio
async def test_delete_auth_failure_propagates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "Forbidden"})

    with pytest.raises(ProviderAuthException):
        await _strategy(handler).delete(CREDENTIALS, "ws1")
