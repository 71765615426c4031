"""FastAPI dependency providers."""
from facerecognizer.core.container import ServiceContainer, container
from facerecognizer.core.exceptions import ServiceNotInitializedError


def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance.

    Raises:
        ServiceNotInitializedError: If the recognizer has not been created yet
    """
    if not container.initialized:
        raise ServiceNotInitializedError("Face recognizer not initialized")
    return container
