from contextlib import asynccontextmanager, contextmanager
import asyncio
import json
import logging

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

import config
from db import init_db
from errors import InvalidArgument, LifecycleError, StoreUnavailable
from lifecycle import LifecycleService
from store import RideRequestStore

logger = logging.getLogger(__name__)


def lifecycle(request) -> LifecycleService:
    return request.app.state.lifecycle


@contextmanager
def failing_as(message: str):
    """Report store failures inside the block as ``message``."""
    try:
        yield
    except StoreUnavailable as exc:
        raise exc.with_message(message) from exc


async def read_json(request: Request) -> dict:
    if not await request.body():
        return {}
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        raise InvalidArgument("Request body must be valid JSON.") from None
    if not isinstance(payload, dict):
        raise InvalidArgument("Request body must be a JSON object.")
    return payload


async def list_ride_requests(request: Request):
    with failing_as("Failed to fetch ride requests"):
        rows = lifecycle(request).list_pending()
    return JSONResponse([r.to_dict() for r in rows])


async def create_ride_request(request: Request):
    payload = await read_json(request)
    required = ["riderId", "pickupLatitude", "pickupLongitude"]
    for k in required:
        if k not in payload:
            raise InvalidArgument(f"missing {k}")
    with failing_as("Failed to request ride"):
        rr = lifecycle(request).request_ride(
            payload["riderId"],
            (payload["pickupLatitude"], payload["pickupLongitude"]),
            payload.get("destination"),
            payload.get("riderEmail"),
        )
    return JSONResponse(rr.to_dict(), status_code=201)


async def get_ride_request(request: Request):
    with failing_as("Failed to fetch ride request"):
        rr = lifecycle(request).get_ride(request.path_params["ride_request_id"])
    return JSONResponse(rr.to_dict())


async def accept_ride_request(request: Request):
    ride_request_id = request.path_params["ride_request_id"]
    payload = await read_json(request)
    with failing_as("Failed to accept ride request"):
        lifecycle(request).accept_ride(
            ride_request_id,
            payload.get("driverId"),
            payload.get("driverName"),
            payload.get("driverVehicle"),
        )
    return JSONResponse({"message": "Ride request accepted successfully.", "rideRequestId": ride_request_id})


async def complete_ride_request(request: Request):
    ride_request_id = request.path_params["ride_request_id"]
    with failing_as("Failed to complete ride request"):
        lifecycle(request).complete_ride(ride_request_id)
    return JSONResponse({"message": "Ride request completed successfully.", "rideRequestId": ride_request_id})


async def watch_ride_request(websocket: WebSocket):
    """Push the rider's request to the socket every time it changes."""
    rider_id = websocket.path_params["ride_request_id"]
    await websocket.accept()
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue = asyncio.Queue()

    def on_change(record):
        # runs on the store's notifier thread
        snapshot = record.to_dict() if record is not None else None
        loop.call_soon_threadsafe(updates.put_nowait, snapshot)

    async def push_updates():
        while True:
            await websocket.send_json(await updates.get())

    try:
        with failing_as("Failed to watch ride request"):
            subscription = lifecycle(websocket).watch_ride(rider_id, on_change)
    except LifecycleError as exc:
        # exception handlers only answer HTTP requests
        logger.error("Could not watch ride request %s: %s", rider_id, exc.message)
        await websocket.send_json(exc.to_dict())
        await websocket.close(code=1011)
        return

    sender = asyncio.create_task(push_updates())
    try:
        # riders never send anything; receiving only detects the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Rider %s stopped watching", rider_id)
    finally:
        sender.cancel()
        subscription.cancel()


async def lifecycle_error(request: Request, exc: LifecycleError):
    if isinstance(exc, StoreUnavailable):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc.details)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


routes = [
    Route("/api/ride-requests", list_ride_requests, methods=["GET"]),
    Route("/api/ride-requests", create_ride_request, methods=["POST"]),
    Route("/api/ride-requests/{ride_request_id}", get_ride_request, methods=["GET"]),
    Route("/api/ride-requests/{ride_request_id}/accept", accept_ride_request, methods=["POST"]),
    Route("/api/ride-requests/{ride_request_id}/complete", complete_ride_request, methods=["POST"]),
    WebSocketRoute("/ws/ride-requests/{ride_request_id}", watch_ride_request),
]

# the browser front end calls the drivers' API from another origin
middleware = [
    Middleware(
        CORSMiddleware,
        allow_origins=list(config.CORS_ORIGINS),
        allow_methods=["*"],
        allow_headers=["*"],
    ),
]


def create_app(service: LifecycleService = None) -> Starlette:
    owns_store = service is None

    @asynccontextmanager
    async def lifespan(app):
        logging.basicConfig(level=config.LOG_LEVEL)
        init_db()
        yield
        if owns_store:
            app.state.lifecycle.store.close()

    app = Starlette(
        debug=config.DEBUG,
        routes=routes,
        middleware=middleware,
        exception_handlers={LifecycleError: lifecycle_error},
        lifespan=lifespan,
    )
    if service is None:
        service = LifecycleService(RideRequestStore(), strict=config.LIFECYCLE_STRICT)
    app.state.lifecycle = service
    return app


app = create_app()
