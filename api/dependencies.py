"""
FastAPI dependencies
"""

from typing import Callable
from snapshot.client import AirtableClient


def get_client_factory() -> Callable[[str], AirtableClient]:
    """Factory building one AirtableClient per request credential"""
    return AirtableClient
