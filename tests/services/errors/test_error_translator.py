import httpx
import pytest

from mlclassroom.clients.errors import ProviderCallError
from mlclassroom.core.enums import Operation, ProjectType
from mlclassroom.core.exceptions import (
    ErrorKind,
    InsufficientCapacityException,
    InsufficientTrainingDataException,
    NotFoundException,
    ProviderAuthException,
    ProviderRateLimitException,
    RemoteModelMissingException,
    UnexpectedProviderException,
)
from mlclassroom.services.errors import ErrorTranslator


def _call_error(
    provider: ProjectType,
    status_code: int | None,
    message: str = "failed",
    *,
    headers: dict[str, str] | None = None,
) -> ProviderCallError:
    return ProviderCallError(
        provider,
        status_code,
        message,
        response_text=message,
        response_headers=headers,
    )


class TestErrorTranslator:
    def setup_method(self) -> None:
        self.translator = ErrorTranslator()

    def test_taxonomy_errors_pass_through(self) -> None:
        original = NotFoundException()
        result = self.translator.translate(
            original, provider=ProjectType.TEXT, operation=Operation.TEST
        )
        assert result is original

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failures_become_credentials_rejected(self, status_code: int) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.IMAGES, status_code, "Unauthorized"),
            provider=ProjectType.IMAGES,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, ProviderAuthException)
        assert result.status_code == 409
        assert result.message == (
            "The Watson credentials being used by your class were rejected. "
            "Please let your teacher or group leader know."
        )

    def test_rate_limit_names_watson_assistant(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.TEXT, 429, "Too Many Requests", headers={"Retry-After": "30"}),
            provider=ProjectType.TEXT,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, ProviderRateLimitException)
        assert result.status_code == 429
        assert result.retry_after == 30
        assert result.message == (
            "Your class is making too many requests to create machine learning models "
            "at too fast a rate. Please stop now and let your teacher or group leader know "
            'that "the Watson Assistant service is currently rate limiting their API key"'
        )

    def test_rate_limit_names_visual_recognition(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.IMAGES, 429, "Too Many Requests"),
            provider=ProjectType.IMAGES,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, ProviderRateLimitException)
        assert '"the Watson Visual Recognition service is currently rate limiting' in result.message
        assert "Watson Assistant" not in result.message
        assert result.retry_after is None

    def test_text_capacity_phrase(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.TEXT, 400, "Maximum workspaces limit exceeded. Limit = 5"),
            provider=ProjectType.TEXT,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, InsufficientCapacityException)
        assert result.status_code == 409
        assert result.message == (
            "Your class already has created their maximum allowed number of models. "
            "Please let your teacher or group leader know that "
            '"the Watson Assistant service has no more room for new models"'
        )

    def test_image_capacity_phrase_wins_over_forbidden(self) -> None:
        result = self.translator.translate(
            _call_error(
                ProjectType.IMAGES,
                403,
                "Cannot execute learning task. : this plan instance can have only 1 custom classifier(s)",
            ),
            provider=ProjectType.IMAGES,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, InsufficientCapacityException)
        assert '"the Watson Visual Recognition service has no more room for new models"' in result.message

    def test_not_found_becomes_remote_model_missing(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.TEXT, 404, "Resource not found"),
            provider=ProjectType.TEXT,
            operation=Operation.TEST,
        )
        assert isinstance(result, RemoteModelMissingException)
        assert result.status_code == 404

    def test_insufficient_images(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.IMAGES, 400, "Not enough images to train"),
            provider=ProjectType.IMAGES,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, InsufficientTrainingDataException)
        assert result.kind is ErrorKind.INSUFFICIENT_TRAINING_DATA
        assert result.message == "Not enough images to train the classifier"

    def test_insufficient_text_training_data(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.TEXT, 400, "Not enough examples for intent"),
            provider=ProjectType.TEXT,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, InsufficientTrainingDataException)
        assert result.message == "Not enough training data to train the classifier"

    def test_unrecognised_failure_is_generic(self) -> None:
        result = self.translator.translate(
            _call_error(ProjectType.TEXT, 500, "internal stack trace: db01 exploded"),
            provider=ProjectType.TEXT,
            operation=Operation.DELETE,
        )
        assert isinstance(result, UnexpectedProviderException)
        assert result.status_code == 500
        assert result.message == "Failed to delete machine learning model"
        assert "db01" not in result.message
        assert "db01" in (result.provider_detail or "")

    def test_transport_errors_are_unexpected(self) -> None:
        result = self.translator.translate(
            httpx.ConnectTimeout("timed out"),
            provider=ProjectType.NUMBERS,
            operation=Operation.TRAIN,
        )
        assert isinstance(result, UnexpectedProviderException)
        assert result.message == "Failed to train machine learning model"

    def test_arbitrary_exceptions_are_unexpected(self) -> None:
        result = self.translator.translate(
            ValueError("bad json"),
            provider=ProjectType.IMAGES,
            operation=Operation.STATUS,
        )
        assert isinstance(result, UnexpectedProviderException)
        assert result.message == "Failed to check the status of the machine learning model"
        assert result.to_dict() == {"error": result.message}

    def test_non_integer_status_code_is_unexpected(self) -> None:
        error = _call_error(ProjectType.IMAGES, None, "URL could not be fetched")
        error.status_code = "400"  # type: ignore[assignment]
        result = self.translator.translate(
            error,
            provider=ProjectType.IMAGES,
            operation=Operation.TEST,
        )
        assert isinstance(result, UnexpectedProviderException)
        assert result.message == "Failed to test machine learning model"
