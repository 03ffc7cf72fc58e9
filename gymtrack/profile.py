from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Optional

from .derive import age_summary, parse_date
from .errors import ProfileValidationError, WriteOnceFieldError
from .logging import get_logger
from .models import UserProfile

if TYPE_CHECKING:
    from .auth import AuthenticatedUser
    from .store import FirestoreStore

logger = get_logger(__name__)

EDITABLE_FIELDS = ("displayName", "birthDate", "sex", "height")
# Settable once; afterwards only the stored value may be re-sent.
WRITE_ONCE_FIELDS = ("birthDate", "sex")


def get_profile(store: "FirestoreStore", user_id: str) -> dict[str, Any] | None:
    return store.get_profile(user_id)


def ensure_profile(store: "FirestoreStore", user: "AuthenticatedUser") -> dict[str, Any]:
    """Return the user's profile, creating it from identity claims on first sight."""
    current = get_profile(store, user.uid)
    if current is not None:
        return current

    seed = {
        "displayName": user.display_name,
        "email": user.email,
        "avatarUrl": user.avatar_url,
    }
    store.merge_profile(user.uid, {k: v for k, v in seed.items() if v is not None})
    logger.info("profile_created", user_id=user.uid)
    return get_profile(store, user.uid) or {"id": user.uid}


def _check_fields(current: dict[str, Any], updates: dict[str, Any], today: Optional[date]) -> None:
    for field in WRITE_ONCE_FIELDS:
        if field not in updates:
            continue
        stored = current.get(field)
        if stored not in (None, "") and stored != updates[field]:
            raise WriteOnceFieldError(field)

    if "height" in updates:
        h = updates["height"]
        if isinstance(h, bool) or not isinstance(h, (int, float)) or h <= 0:
            raise ProfileValidationError("height", "must be a positive number of centimeters")

    if "birthDate" in updates:
        born = parse_date(updates["birthDate"])
        if born is None:
            raise ProfileValidationError("birthDate", "expected YYYY-MM-DD")
        if born > (today or date.today()):
            raise ProfileValidationError("birthDate", "must not be in the future")


def upsert_profile(
    store: "FirestoreStore", user_id: str, *, today: Optional[date] = None, **kwargs: Any
) -> dict[str, Any]:
    """Partial update. Keys not passed (or passed as None) keep their stored value.

    The write-once check and the merge share a transaction, so two
    concurrent first writes cannot both set different values.
    """
    updates = {k: v for k, v in kwargs.items() if k in EDITABLE_FIELDS and v is not None}

    if updates:

        def _checked(current: dict[str, Any]) -> dict[str, Any]:
            _check_fields(current, updates, today)
            return updates

        store.update_profile(user_id, _checked)
        logger.info("profile_updated", user_id=user_id, fields=sorted(updates))
    return get_profile(store, user_id) or {"id": user_id}


def profile_view(profile: dict[str, Any], today: Optional[date] = None) -> dict[str, Any]:
    data = UserProfile.model_validate(profile).model_dump()
    data["age"] = age_summary(data.get("birthDate"), today)
    return data
