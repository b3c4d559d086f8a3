from abc import ABC, abstractmethod


class ApiClient(ABC):
    """
    Common interface of the API clients, used by exceptions to name the client.

    Clients hold no base URL of their own. It is derived from the credentials
    on every call.
    """

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """`True` when both a base URL and a token are currently available."""
        raise NotImplementedError
