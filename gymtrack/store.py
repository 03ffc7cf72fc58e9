from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore

from . import settings
from .errors import StoreError
from .history import normalize
from .logging import get_logger
from .models import MeasurementRecord
from .sync import Subscription, watch_query

logger = get_logger(__name__)

PROFILES = "profiles"
MEASUREMENTS = "measurements"

_client: firestore.Client | None = None


def get_client() -> firestore.Client:
    global _client
    if _client is None:
        # Credentials come from the environment: the service account in GCP,
        # `gcloud auth application-default login` locally.
        kwargs: dict[str, Any] = {"database": settings.FIRESTORE_DATABASE}
        if settings.GCP_PROJECT:
            kwargs["project"] = settings.GCP_PROJECT
        _client = firestore.Client(**kwargs)
        logger.info("firestore_client_created", database=settings.FIRESTORE_DATABASE)
    return _client


def records_from_docs(docs: Iterable[Any]) -> list[MeasurementRecord]:
    return normalize({**(d.to_dict() or {}), "id": d.id} for d in docs)


class FirestoreStore:
    """`profiles` keyed by user id; `measurements` filtered by userId, sorted by timestamp."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def get_profile(self, user_id: str) -> dict[str, Any] | None:
        try:
            snap = self.client.collection(PROFILES).document(user_id).get()
        except gexc.GoogleAPIError as exc:
            logger.error("profile_read_failed", user_id=user_id, error=str(exc))
            raise StoreError("profile read", str(exc)) from exc
        if not snap.exists:
            return None
        return {**(snap.to_dict() or {}), "id": user_id}

    def merge_profile(self, user_id: str, fields: dict[str, Any]) -> None:
        # merge=True leaves every field not named in `fields` untouched.
        try:
            self.client.collection(PROFILES).document(user_id).set(fields, merge=True)
        except gexc.GoogleAPIError as exc:
            logger.error("profile_write_failed", user_id=user_id, error=str(exc))
            raise StoreError("profile write", str(exc)) from exc

    def update_profile(self, user_id: str, apply: Callable[[dict[str, Any]], dict[str, Any]]) -> dict[str, Any]:
        """Read-check-merge in one transaction.

        `apply` gets the stored fields and returns the fields to merge; it may
        raise to abort. It can run more than once when writers collide.
        """
        ref = self.client.collection(PROFILES).document(user_id)

        @firestore.transactional
        def _run(transaction: Any) -> dict[str, Any]:
            snap = ref.get(transaction=transaction)
            updates = apply((snap.to_dict() or {}) if snap.exists else {})
            if updates:
                transaction.set(ref, updates, merge=True)
            return updates

        try:
            return _run(self.client.transaction())
        except gexc.GoogleAPIError as exc:
            logger.error("profile_write_failed", user_id=user_id, error=str(exc))
            raise StoreError("profile write", str(exc)) from exc
        except ValueError as exc:
            # Retries exhausted by concurrent writers.
            logger.error("profile_write_contended", user_id=user_id, error=str(exc))
            raise StoreError("profile write", str(exc)) from exc

    def add_measurement(self, record: MeasurementRecord) -> str:
        try:
            _, ref = self.client.collection(MEASUREMENTS).add(record.to_document())
        except gexc.GoogleAPIError as exc:
            logger.error("measurement_write_failed", user_id=record.userId, error=str(exc))
            raise StoreError("measurement write", str(exc)) from exc
        return ref.id

    def _measurement_query(self, user_id: str, *, descending: bool, limit: Optional[int]) -> Any:
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        q = (
            self.client.collection(MEASUREMENTS)
            .where("userId", "==", user_id)
            .order_by("timestamp", direction=direction)
        )
        if limit is not None:
            q = q.limit(limit)
        return q

    def list_measurements(
        self, user_id: str, *, descending: bool = False, limit: Optional[int] = None
    ) -> list[MeasurementRecord]:
        q = self._measurement_query(user_id, descending=descending, limit=limit)
        try:
            return records_from_docs(q.stream())
        except gexc.GoogleAPIError as exc:
            logger.error("measurement_query_failed", user_id=user_id, error=str(exc))
            raise StoreError("measurement query", str(exc)) from exc

    def watch_measurements(
        self,
        user_id: str,
        on_snapshot: Callable[[list[MeasurementRecord]], None],
        on_error: Callable[[Exception], None],
        *,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Subscription:
        q = self._measurement_query(user_id, descending=descending, limit=limit)
        order = "desc" if descending else "asc"
        return watch_query(
            q,
            name=f"measurements:{user_id}:{order}:{limit or 'all'}",
            convert=records_from_docs,
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
