from mlclassroom.services.credentials.resolver import CredentialResolver, default_capacity

__all__ = ["CredentialResolver", "default_capacity"]
