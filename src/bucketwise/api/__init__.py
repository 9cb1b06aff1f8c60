"""REST API for Bucketwise."""

from bucketwise.api.app import create_api_app

__all__ = ["create_api_app"]
