from mlclassroom.clients.errors import ProviderCallError
from mlclassroom.clients.http_client import HTTPClientPool, close_http_clients, get_http_client

__all__ = ["HTTPClientPool", "ProviderCallError", "close_http_clients", "get_http_client"]
