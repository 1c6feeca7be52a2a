from mlclassroom.services.errors.translator import ErrorTranslator

__all__ = ["ErrorTranslator"]
