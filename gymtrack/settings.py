import os


def get_env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


GCP_PROJECT = os.getenv("GCP_PROJECT")  # optional; auto-detected in GCP
FIRESTORE_DATABASE = get_env("FIRESTORE_DATABASE", "(default)")
# ID tokens are issued for the Firebase project; usually the same as GCP_PROJECT.
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID") or GCP_PROJECT

RECENT_WINDOW_SIZE = int(get_env("RECENT_WINDOW_SIZE", "7"))
LOG_DEBUG = _flag("LOG_DEBUG")
