from __future__ import annotations

import asyncio
import contextlib
import csv
import io
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import Depends, FastAPI, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from . import settings
from .auth import AuthenticatedUser, require_user, require_ws_user
from .dashboard import DashboardState, Snapshot, SnapshotError, build_dashboard, reduce_dashboard
from .errors import StoreError, TrackerError
from .history import ascending, chart_points, descending, has_chartable_history
from .logging import get_logger, setup_logging
from .measurements import MEASUREMENT_TYPES, METRICS, label_for, save_measurement, unit_for
from .models import (
    MeasurementCreateRequest,
    MeasurementListResponse,
    MeasurementRecord,
    ProfileUpdateRequest,
)
from .profile import ensure_profile, profile_view, upsert_profile
from .store import FirestoreStore, get_client
from .sync import Subscription
from .trends import progress_indicators

logger = get_logger(__name__)

app = FastAPI(title="Gym Progress Tracker API", version="0.1.0")


@app.on_event("startup")
def _startup() -> None:
    setup_logging(debug=settings.LOG_DEBUG)


@app.exception_handler(TrackerError)
async def _tracker_error(request: Request, exc: TrackerError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_failed", code=exc.code, path=request.url.path, method=request.method, details=exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message, "details": exc.details}},
    )


def get_store() -> FirestoreStore:
    return FirestoreStore(get_client())


@app.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/api/measurement-types")
def measurement_types() -> dict[str, Any]:
    return {
        "types": [{"kind": t.kind, "label": t.label, "unit": t.unit} for t in MEASUREMENT_TYPES.values()],
        "metrics": [{"metric": m, "label": label_for(m), "unit": unit_for(m)} for m in METRICS],
    }


@app.get("/api/profile")
def read_profile(
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> dict[str, Any]:
    return profile_view(ensure_profile(store, user))


@app.put("/api/profile")
def update_profile(
    req: ProfileUpdateRequest,
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> dict[str, Any]:
    ensure_profile(store, user)
    updated = upsert_profile(store, user.uid, **req.model_dump(exclude_unset=True))
    return profile_view(updated)


@app.post("/api/measurements", response_model=MeasurementRecord, status_code=201)
def add_measurement(
    req: MeasurementCreateRequest,
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> MeasurementRecord:
    profile = ensure_profile(store, user)
    return save_measurement(store, req.measurements, user_id=user.uid, profile_height=profile.get("height"))


@app.get("/api/measurements", response_model=MeasurementListResponse)
def list_measurements(
    order: Literal["asc", "desc"] = "desc",
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> MeasurementListResponse:
    newest_first = order == "desc"
    records = store.list_measurements(user.uid, descending=newest_first)
    return MeasurementListResponse(measurements=descending(records) if newest_first else ascending(records))


@app.get("/api/measurements/export.csv")
def export_csv(
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> Response:
    records = ascending(store.list_measurements(user.uid))
    kinds = list(MEASUREMENT_TYPES)

    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(["id", "date", "timestamp", *kinds, "bmi"])
    for r in records:
        w.writerow([r.id, r.date, r.timestamp, *(r.measurements.get(k, "") for k in kinds), "" if r.bmi is None else r.bmi])

    return Response(content=out.getvalue(), media_type="text/csv")


@app.get("/api/progress")
def progress(
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> dict[str, Any]:
    history = ascending(store.list_measurements(user.uid))
    return {
        "history": [r.model_dump() for r in history],
        "chart": chart_points(history, METRICS),
        "chartAvailable": has_chartable_history(history),
        "indicators": {m: ind.model_dump() for m, ind in progress_indicators(history).items()},
    }


@app.get("/api/dashboard")
def dashboard(
    user: AuthenticatedUser = Depends(require_user),
    store: FirestoreStore = Depends(get_store),
) -> dict[str, Any]:
    profile = ensure_profile(store, user)
    state = DashboardState()
    for source, kwargs in (("latest", {"descending": True, "limit": 1}), ("history", {})):
        try:
            event: Snapshot | SnapshotError = Snapshot(source, tuple(store.list_measurements(user.uid, **kwargs)))
        except StoreError as exc:
            event = SnapshotError(source, exc.message)
        state = reduce_dashboard(state, event)
    return build_dashboard(profile, state, window=settings.RECENT_WINDOW_SIZE)


def _open_feed(store: FirestoreStore, user_id: str, source: str, push: Any, **query: Any) -> Subscription:
    return store.watch_measurements(
        user_id,
        lambda records: push(Snapshot(source, tuple(records))),
        lambda exc: push(SnapshotError(source, str(exc))),
        **query,
    )


async def _wait_for_disconnect(websocket: WebSocket, events: asyncio.Queue) -> None:
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        events.put_nowait(None)


@app.websocket("/ws/dashboard")
async def dashboard_live(
    websocket: WebSocket,
    user: AuthenticatedUser = Depends(require_ws_user),
    store: FirestoreStore = Depends(get_store),
) -> None:
    await websocket.accept()
    loop = asyncio.get_running_loop()
    events: asyncio.Queue = asyncio.Queue()

    def push(event: Snapshot | SnapshotError) -> None:
        # Called from the store's watch thread.
        loop.call_soon_threadsafe(events.put_nowait, event)

    try:
        profile = await run_in_threadpool(ensure_profile, store, user)
        latest_feed = _open_feed(store, user.uid, "latest", push, descending=True, limit=1)
    except StoreError as exc:
        logger.error("dashboard_feed_failed", user_id=user.uid, error=exc.message)
        await websocket.close(code=1011)
        return

    with latest_feed:
        try:
            history_feed = _open_feed(store, user.uid, "history", push)
        except StoreError as exc:
            logger.error("dashboard_feed_failed", user_id=user.uid, error=exc.message)
            await websocket.close(code=1011)
            return

        with history_feed:
            logger.info("dashboard_stream_opened", user_id=user.uid)
            watcher = asyncio.create_task(_wait_for_disconnect(websocket, events))
            state = DashboardState()
            try:
                while True:
                    event = await events.get()
                    if event is None:
                        break
                    state = reduce_dashboard(state, event)
                    if state.loading:
                        continue
                    await websocket.send_json(build_dashboard(profile, state, window=settings.RECENT_WINDOW_SIZE))
            except WebSocketDisconnect:
                logger.info("dashboard_client_gone", user_id=user.uid)
            finally:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher
                logger.info("dashboard_stream_closed", user_id=user.uid)
