"""
Adapters package for the Content Service.

Contains the HTTP client for the headless CMS. Adapters encapsulate base
URLs, request shapes, retry policies and the mapping of upstream failures
to shared errors.
"""

from .cms_client import CMSContentClient

__all__ = [
    "CMSContentClient",
]
