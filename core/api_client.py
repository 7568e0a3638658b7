"""
core/api_client.py
------------------
Thin Python client for the StoreDirectory HTTP API.

Every method posts to `/api/<Concept>/<action>` and returns the decoded JSON
response. Non-2xx responses raise `ApiError` carrying the backend's `error`
message.

Usage:
    client = StoreDirectoryClient("http://127.0.0.1:8000")
    store_id = client.create_store("Joe's", "1 Main St")["storeId"]

Any object with a requests-style `post(url, json=..., timeout=...)` can be
passed as `session` (e.g. FastAPI's TestClient).
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

BACKEND_URL = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")


class ApiError(Exception):
    """HTTP error returned by the backend (status_code is None when unreachable)."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(f"HTTP {status_code}: {message}" if status_code else message)
        self.status_code = status_code
        self.message = message


class StoreDirectoryClient:
    def __init__(self, base_url: str = BACKEND_URL, timeout: float = 10, session: Any = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def call(self, concept: str, action: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """POST `payload` to /api/<concept>/<action> and return the JSON body."""
        url = f"{self.base_url}/api/{concept}/{action}"
        try:
            resp = self.session.post(url, json=payload or {}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ApiError(None, f"Backend unreachable at {self.base_url} ({e.__class__.__name__})") from e

        if resp.status_code >= 400:
            try:
                data = resp.json()
            except ValueError:
                data = None
            message = data.get("error") if isinstance(data, dict) else None
            message = message or resp.text[:200]
            logger.debug("[Client] %s/%s → HTTP %s: %s", concept, action, resp.status_code, message)
            raise ApiError(resp.status_code, message)
        return resp.json()

    # ------------------------------------------------------------------ #
    # Stores
    # ------------------------------------------------------------------ #

    def create_store(self, name: str, address: str) -> Dict[str, Any]:
        return self.call("Store", "create", {"name": name, "address": address})

    def delete_store(self, store_id: str) -> Dict[str, Any]:
        return self.call("Store", "delete", {"storeId": store_id})

    def get_store(self, store_id: str) -> Dict[str, Any]:
        return self.call("Store", "_get", {"storeId": store_id})

    def stores_by_name(self, name: str) -> List[Dict[str, Any]]:
        return self.call("Store", "_by_name", {"name": name})

    def stores_by_address(self, address: str) -> List[Dict[str, Any]]:
        return self.call("Store", "_by_address", {"address": address})

    def list_stores(self) -> List[Dict[str, Any]]:
        return self.call("Store", "_list")

    # ------------------------------------------------------------------ #
    # Users
    # ------------------------------------------------------------------ #

    def register_user(self, username: str, email: str, password: str) -> Dict[str, Any]:
        return self.call("User", "register", {"username": username, "email": email, "password": password})

    def authenticate_user(self, username_or_email: str, password: str) -> Dict[str, Any]:
        return self.call("User", "authenticate", {"usernameOrEmail": username_or_email, "password": password})

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self.call("User", "_get", {"userId": user_id})

    def update_email(self, user_id: str, new_email: str) -> Dict[str, Any]:
        return self.call("User", "update_email", {"userId": user_id, "newEmail": new_email})

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self.call("User", "delete", {"userId": user_id})

    # ------------------------------------------------------------------ #
    # Reviews & ratings
    # ------------------------------------------------------------------ #

    def create_review(self, user_id: str, store_id: str, text: str, rating: int) -> Dict[str, Any]:
        return self.call(
            "Review", "create",
            {"userId": user_id, "storeId": store_id, "text": text, "rating": rating},
        )

    def delete_review(self, review_id: str) -> Dict[str, Any]:
        return self.call("Review", "delete", {"reviewId": review_id})

    def get_review(self, review_id: str) -> Dict[str, Any]:
        return self.call("Review", "_get", {"reviewId": review_id})

    def reviews_for_store(self, store_id: str) -> List[Dict[str, Any]]:
        return self.call("Review", "_for_store", {"storeId": store_id})

    def reviews_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self.call("Review", "_by_user", {"userId": user_id})

    def update_rating(self, store_id: str, rating: float, weight: float = 1) -> Dict[str, Any]:
        return self.call(
            "Rating", "update",
            {"storeId": store_id, "contribution": {"rating": rating, "weight": weight}},
        )

    def get_rating(self, store_id: str) -> Dict[str, Any]:
        return self.call("Rating", "_get", {"storeId": store_id})

    # ------------------------------------------------------------------ #
    # Tags
    # ------------------------------------------------------------------ #

    def add_tag(self, store_id: str, tag: str) -> Dict[str, Any]:
        return self.call("Tagging", "add_tag", {"storeId": store_id, "tag": tag})

    def remove_tag(self, store_id: str, tag: str) -> Dict[str, Any]:
        return self.call("Tagging", "remove_tag", {"storeId": store_id, "tag": tag})

    def tags_for_store(self, store_id: str) -> List[Dict[str, Any]]:
        return self.call("Tagging", "_tags_for_store", {"storeId": store_id})

    def stores_by_tag(self, tag: str) -> List[Dict[str, Any]]:
        return self.call("Tagging", "_stores_by_tag", {"tag": tag})
