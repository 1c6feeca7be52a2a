from mlclassroom.api.models.routes import router

__all__ = ["router"]
