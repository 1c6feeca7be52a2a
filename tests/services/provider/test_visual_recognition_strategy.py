import base64
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from mlclassroom.core.enums import ClassifierStatus, ProjectType, ServiceType
from mlclassroom.core.exceptions import (
    InsufficientTrainingDataException,
    ProviderRateLimitException,
    RemoteModelMissingException,
    UnexpectedProviderException,
)
from mlclassroom.core.training_types import (
    ClassifierRecord,
    Credentials,
    Project,
    TestPayload,
)
from mlclassroom.services.provider import VisualRecognitionStrategy

CREDENTIALS = Credentials(
    id="creds1",
    class_id="classid",
    service_type=ServiceType.VISUAL_RECOGNITION,
    url="https://gateway-a.watsonplatform.net/visual-recognition/api",
    username="user",
    password="pass",
)
PROJECT = Project(
    id="project1", class_id="classid", user_id="userid", type=ProjectType.IMAGES, name="pets"
)
CREATED = datetime(2018, 3, 19, 9, 0, tzinfo=timezone.utc)
RECORD = ClassifierRecord(
    id="rec1",
    project_id=PROJECT.id,
    project_type=ProjectType.IMAGES,
    classifier_id="pets_123",
    name="pets",
    created=CREATED,
    updated=CREATED,
    status=ClassifierStatus.AVAILABLE,
    credentials_id=CREDENTIALS.id,
)


def _strategy(handler) -> VisualRecognitionStrategy:  # type: ignore[no-untyped-def]
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VisualRecognitionStrategy(http_client=client)


def _classify_response(classes: list[tuple[str, float]]) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "images": [
                {
                    "classifiers": [
                        {
                            "classifier_id": "pets_123",
                            "classes": [{"class": name, "score": score} for name, score in classes],
                        }
                    ]
                }
            ]
        },
    )


@pytest.mark.asyncio
async def test_train_creates_classifier() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json={
                "classifier_id": "pets_123",
                "name": "pets",
                "status": "training",
                "created": "2018-03-19T09:00:00.000Z",
            },
        )

    record = await _strategy(handler).train(PROJECT, CREDENTIALS, expiry_hours=24)

    request = seen[0]
    assert request.url.path == "/visual-recognition/api/v3/classifiers"
    assert request.url.params["version"] == "2018-03-19"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="name"' in request.content
    assert b"pets" in request.content

    assert record.classifier_id == "pets_123"
    assert record.status is ClassifierStatus.TRAINING
    assert record.created == CREATED
    assert record.expiry == CREATED + timedelta(hours=24)


@pytest.mark.asyncio
async def test_train_not_enough_images() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Not enough images to train classifier"})

    with pytest.raises(InsufficientTrainingDataException) as exc_info:
        await _strategy(handler).train(PROJECT, CREDENTIALS)
    assert exc_info.value.message == "Not enough images to train the classifier"


@pytest.mark.asyncio
async def test_train_rate_limited() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "10"}, json={"error": "Too many"})

    with pytest.raises(ProviderRateLimitException) as exc_info:
        await _strategy(handler).train(PROJECT, CREDENTIALS)
    assert "Watson Visual Recognition" in exc_info.value.message
    assert exc_info.value.retry_after == 10


@pytest.mark.asyncio
async def test_train_without_classifier_id_is_unexpected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "training"})

    with pytest.raises(UnexpectedProviderException):
        await _strategy(handler).train(PROJECT, CREDENTIALS)


@pytest.mark.asyncio
async def test_status_query_maps_vocabulary() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"classifier_id": "pets_123", "status": "ready"})

    training = replace(RECORD, status=ClassifierStatus.TRAINING)
    (refreshed,) = await _strategy(handler).query_statuses(
        "classid", [training], {CREDENTIALS.id: CREDENTIALS}
    )
    assert refreshed.status is ClassifierStatus.AVAILABLE
    assert refreshed.updated == CREATED


@pytest.mark.asyncio
async def test_classify_by_url() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _classify_response([("Second", 0.2), ("First", 0.6)])

    results = await _strategy(handler).test(
        CREDENTIALS, RECORD, TestPayload(image_url="http://www.lovelypictures.com/cat.jpg")
    )

    assert seen[0].url.path.endswith("/v3/classify")
    assert b"http://www.lovelypictures.com/cat.jpg" in seen[0].content
    assert b'name="classifier_ids"' in seen[0].content
    assert [(c.class_name, c.confidence) for c in results] == [("First", 0.6), ("Second", 0.2)]
    assert results[0].classifier_timestamp != CREATED


@pytest.mark.asyncio
async def test_classify_by_file() -> None:
    seen: list[httpx.Request] = []
    image = base64.b64decode(base64.b64encode(b"PRETEND THIS IS THE DATA OF AN IMAGE"))

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _classify_response([("Third", 0.5), ("Fourth", 0.4)])

    results = await _strategy(handler).test_file(CREDENTIALS, RECORD, image)

    assert b'name="images_file"' in seen[0].content
    assert b"PRETEND THIS IS THE DATA OF AN IMAGE" in seen[0].content
    assert [(c.class_name, c.confidence) for c in results] == [("Third", 0.5), ("Fourth", 0.4)]


@pytest.mark.asyncio
async def test_classify_timestamps_are_per_call() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _classify_response([("First", 0.6)])

    strategy = _strategy(handler)
    payload = TestPayload(image_url="http://example.com/cat.jpg")
    first = await strategy.test(CREDENTIALS, RECORD, payload)
    second = await strategy.test(CREDENTIALS, RECORD, payload)
    assert first[0].classifier_timestamp != CREATED
    assert second[0].classifier_timestamp >= first[0].classifier_timestamp


@pytest.mark.asyncio
async def test_classify_image_level_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"images": [{"error": {"code": 400, "description": "URL could not be fetched"}}]},
        )

    with pytest.raises(UnexpectedProviderException) as exc_info:
        await _strategy(handler).test_url(CREDENTIALS, RECORD, "http://example.com/missing.jpg")
    assert exc_info.value.message == "Failed to test machine learning model"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("400", UnexpectedProviderException),
        ("not-a-number", UnexpectedProviderException),
        (None, UnexpectedProviderException),
        ("404", RemoteModelMissingException),
    ],
)
async def test_classify_image_level_error_code_is_coerced(code, expected) -> None:  # type: ignore[no-untyped-def]
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"images": [{"error": {"code": code, "description": "URL could not be fetched"}}]},
        )

    with pytest.raises(expected):
        await _strategy(handler).test_url(CREDENTIALS, RECORD, "http://example.com/missing.jpg")


@pytest.mark.asyncio
async def test_delete_classifier() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    await _strategy(handler).delete(CREDENTIALS, "pets_123")
    assert seen[0].method == "DELETE"
    assert seen[0].url.path.endswith("/v3/classifiers/pets_123")
