from .base import HttpClient, HttpResponse
from .requests_client import RequestsHttpClient

__all__ = ["HttpClient", "HttpResponse", "RequestsHttpClient"]
