import json
import logging
import time
import uuid
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from valet.admin.oversight import (
    delete_booking as admin_delete_booking_op,
    get_all_bookings,
    get_all_schedules,
    parse_booking_filters,
    update_booking_status as admin_update_booking_status_op,
)
from valet.bookings.lifecycle import (
    cancel_booking,
    create_booking,
    get_booking,
    parse_create_booking_args,
    parse_update_booking_args,
    parse_update_booking_status_args,
    update_booking,
    update_booking_status,
)
from valet.bookings.store import (
    list_location_bookings,
    list_upcoming_bookings,
    list_user_bookings,
    serialize_booking,
)
from valet.db.session import SessionLocal
from valet.errors import BookingEngineError
from valet.locations.directory import delete_location
from valet.schedules.bulk import create_bulk_schedules
from valet.schedules.store import (
    create_schedule,
    delete_schedule,
    get_location_schedules,
    is_location_open,
    parse_create_schedule_args,
    parse_update_schedule_args,
    serialize_schedule,
    update_schedule,
)
from valet.security.dependencies import require_admin_api_key


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("valet.backend")


logger = configure_logging()
app = FastAPI(title="Valet Parking Backend")


class BulkSchedulesRequest(BaseModel):
    location_id: int
    schedules: list[dict[str, Any]] = Field(min_length=1)


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }


def _invalid_args(exc: ValidationError) -> JSONResponse:
    return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)


def _engine_error(exc: BookingEngineError) -> JSONResponse:
    return JSONResponse(content=exc.to_payload(), status_code=exc.status_code)


def _system_down(db, action: str) -> JSONResponse:
    db.rollback()
    logger.exception("Unhandled failure while %s", action)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error_code": "SYSTEM_DOWN",
            "human_message": f"Temporary issue {action}.",
        },
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.post("/v1/bookings")
async def create_booking_endpoint(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        booking = create_booking(db=db, args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"booking": serialize_booking(booking)}},
        )
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "creating booking")
    finally:
        db.close()


@app.get("/v1/bookings/upcoming")
async def upcoming_bookings_endpoint(user_id: int | None = None) -> JSONResponse:
    db = SessionLocal()
    try:
        bookings = list_upcoming_bookings(db=db, user_id=user_id)
        return JSONResponse(
            content={"ok": True, "data": {"bookings": [serialize_booking(b) for b in bookings]}}
        )
    finally:
        db.close()


@app.get("/v1/bookings/{booking_id}")
async def get_booking_endpoint(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        booking = get_booking(db=db, booking_id=booking_id)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    finally:
        db.close()


@app.patch("/v1/bookings/{booking_id}")
async def update_booking_endpoint(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_update_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        booking = update_booking(db=db, booking_id=booking_id, args=args)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "updating booking")
    finally:
        db.close()


@app.post("/v1/bookings/{booking_id}/status")
async def update_booking_status_endpoint(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_update_booking_status_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        booking = update_booking_status(db=db, booking_id=booking_id, new_status=args.status)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "updating booking status")
    finally:
        db.close()


@app.post("/v1/bookings/{booking_id}/cancel")
async def cancel_booking_endpoint(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        booking = cancel_booking(db=db, booking_id=booking_id)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "cancelling booking")
    finally:
        db.close()


@app.get("/v1/users/{user_id}/bookings")
async def user_bookings_endpoint(user_id: int, page: int = 1, limit: int = 10) -> JSONResponse:
    db = SessionLocal()
    try:
        bookings = list_user_bookings(db=db, user_id=user_id, page=page, limit=limit)
        return JSONResponse(
            content={"ok": True, "data": {"bookings": [serialize_booking(b) for b in bookings]}}
        )
    finally:
        db.close()


@app.get("/v1/locations/{location_id}/bookings")
async def location_bookings_endpoint(
    location_id: int,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> JSONResponse:
    db = SessionLocal()
    try:
        bookings = list_location_bookings(
            db=db,
            location_id=location_id,
            start_date=start_date,
            end_date=end_date,
        )
        return JSONResponse(
            content={"ok": True, "data": {"bookings": [serialize_booking(b) for b in bookings]}}
        )
    finally:
        db.close()


@app.get("/v1/locations/{location_id}/schedules")
async def location_schedules_endpoint(location_id: int, active_only: bool = True) -> JSONResponse:
    db = SessionLocal()
    try:
        schedules = get_location_schedules(db=db, location_id=location_id, active_only=active_only)
        return JSONResponse(
            content={"ok": True, "data": {"schedules": [serialize_schedule(s) for s in schedules]}}
        )
    finally:
        db.close()


@app.get("/v1/locations/{location_id}/open")
async def location_open_endpoint(location_id: int, day_of_week: int, time: str) -> JSONResponse:
    db = SessionLocal()
    try:
        is_open = is_location_open(
            db=db,
            location_id=location_id,
            day_of_week=day_of_week,
            time_string=time,
        )
        return JSONResponse(content={"ok": True, "data": {"is_open": is_open}})
    finally:
        db.close()


@app.get("/v1/admin/bookings", dependencies=[Depends(require_admin_api_key)])
async def admin_list_bookings(request: Request) -> JSONResponse:
    try:
        filters = parse_booking_filters(dict(request.query_params))
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        result = get_all_bookings(db=db, filters=filters)
        return JSONResponse(
            content={
                "ok": True,
                "data": {
                    "bookings": [serialize_booking(b) for b in result["bookings"]],
                    "pagination": result["pagination"],
                },
            }
        )
    finally:
        db.close()


@app.patch("/v1/admin/bookings/{booking_id}/status", dependencies=[Depends(require_admin_api_key)])
async def admin_update_booking_status(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_update_booking_status_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        booking = admin_update_booking_status_op(db=db, booking_id=booking_id, new_status=args.status)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "updating booking status")
    finally:
        db.close()


@app.delete("/v1/admin/bookings/{booking_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_delete_booking(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        admin_delete_booking_op(db=db, booking_id=booking_id)
        return JSONResponse(content={"ok": True, "data": {"booking_id": booking_id}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "deleting booking")
    finally:
        db.close()


@app.get("/v1/admin/schedules", dependencies=[Depends(require_admin_api_key)])
async def admin_list_schedules() -> JSONResponse:
    db = SessionLocal()
    try:
        schedules = get_all_schedules(db=db)
        return JSONResponse(
            content={"ok": True, "data": {"schedules": [serialize_schedule(s) for s in schedules]}}
        )
    finally:
        db.close()


@app.post("/v1/admin/schedules", dependencies=[Depends(require_admin_api_key)])
async def admin_create_schedule(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_schedule_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        schedule = create_schedule(db=db, args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"schedule": serialize_schedule(schedule)}},
        )
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "creating schedule")
    finally:
        db.close()


@app.post("/v1/admin/schedules/bulk", dependencies=[Depends(require_admin_api_key)])
async def admin_create_bulk_schedules(payload: dict[str, Any]) -> JSONResponse:
    try:
        request_body = BulkSchedulesRequest.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        result = create_bulk_schedules(
            db=db,
            location_id=request_body.location_id,
            entries=request_body.schedules,
        )
    except Exception:
        return _system_down(db, "creating schedules")
    finally:
        db.close()

    content = {
        "ok": True,
        "data": {
            "successful": [serialize_schedule(s) for s in result.successful],
            "failed": result.failed,
        },
    }
    return JSONResponse(status_code=201 if result.all_succeeded else 207, content=content)


@app.patch("/v1/admin/schedules/{schedule_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_update_schedule(schedule_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_update_schedule_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        schedule = update_schedule(db=db, schedule_id=schedule_id, args=args)
        return JSONResponse(content={"ok": True, "data": {"schedule": serialize_schedule(schedule)}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "updating schedule")
    finally:
        db.close()


@app.delete("/v1/admin/schedules/{schedule_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_delete_schedule(schedule_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        delete_schedule(db=db, schedule_id=schedule_id)
        return JSONResponse(content={"ok": True, "data": {"schedule_id": schedule_id}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "deleting schedule")
    finally:
        db.close()


@app.delete("/v1/admin/locations/{location_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_delete_location(location_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        delete_location(db=db, location_id=location_id)
        return JSONResponse(content={"ok": True, "data": {"location_id": location_id}})
    except BookingEngineError as exc:
        return _engine_error(exc)
    except Exception:
        return _system_down(db, "deleting location")
    finally:
        db.close()
