import pytest
from conftest import make_credentials, make_project, make_record

from mlclassroom.core.enums import ProjectType, ServiceType
from mlclassroom.core.exceptions import NotFoundException
from mlclassroom.services.credentials import CredentialResolver
from mlclassroom.services.store import SqlModelStore


class TestCredentialResolver:
    def test_explicit_id(self, store: SqlModelStore) -> None:
        credentials = make_credentials(store, ServiceType.CONVERSATION)
        resolver = CredentialResolver(store)
        assert resolver.resolve("classid", ServiceType.CONVERSATION, credentials.id) == credentials

    def test_explicit_id_from_other_class_is_not_found(self, store: SqlModelStore) -> None:
        credentials = make_credentials(store, ServiceType.CONVERSATION, class_id="otherclass")
        resolver = CredentialResolver(store)
        with pytest.raises(NotFoundException):
            resolver.resolve("classid", ServiceType.CONVERSATION, credentials.id)

    def test_explicit_id_with_wrong_service_type_is_not_found(self, store: SqlModelStore) -> None:
        credentials = make_credentials(store, ServiceType.VISUAL_RECOGNITION)
        resolver = CredentialResolver(store)
        with pytest.raises(NotFoundException):
            resolver.resolve("classid", ServiceType.CONVERSATION, credentials.id)

    def test_unknown_id_is_not_found(self, store: SqlModelStore) -> None:
        with pytest.raises(NotFoundException):
            CredentialResolver(store).resolve("classid", ServiceType.CONVERSATION, "blahblahblah")

    def test_no_credentials_configured(self, store: SqlModelStore) -> None:
        resolver = CredentialResolver(store)
        assert resolver.candidates("classid", ServiceType.CONVERSATION) == []
        with pytest.raises(NotFoundException):
            resolver.resolve("classid", ServiceType.CONVERSATION)

    def test_skips_exhausted_credentials(self, store: SqlModelStore) -> None:
        project = make_project(store, ProjectType.IMAGES)
        full = make_credentials(store, ServiceType.VISUAL_RECOGNITION, max_models=1)
        spare = make_credentials(store, ServiceType.VISUAL_RECOGNITION, max_models=1)
        store.store_classifier("classid", make_record(project, full))

        resolver = CredentialResolver(store)
        candidates = resolver.candidates("classid", ServiceType.VISUAL_RECOGNITION)
        by_id = {c.credentials.id: c for c in candidates}
        assert by_id[full.id].exhausted
        assert not by_id[spare.id].exhausted
        assert resolver.resolve("classid", ServiceType.VISUAL_RECOGNITION) == spare

    def test_default_capacity_from_config(self, store: SqlModelStore) -> None:
        make_credentials(store, ServiceType.CONVERSATION)
        (candidate,) = CredentialResolver(store).candidates("classid", ServiceType.CONVERSATION)
        assert candidate.capacity == 5
        assert candidate.models_in_use == 0

    def test_resolve_many_skips_unknown_ids(self, store: SqlModelStore) -> None:
        credentials = make_credentials(store, ServiceType.CONVERSATION)
        resolved = CredentialResolver(store).resolve_many("classid", [credentials.id, "missing"])
        assert resolved == {credentials.id: credentials}
