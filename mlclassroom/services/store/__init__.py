from mlclassroom.services.store.model_store import CredentialsInUseError, ModelStore, SqlModelStore

__all__ = ["ModelStore", "SqlModelStore", "CredentialsInUseError"]
