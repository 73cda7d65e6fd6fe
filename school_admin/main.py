# school_admin/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_admin.config import settings
from school_admin.database import Base, engine
from school_admin.models import class_schedule, period, profile, room, school, school_admins  # noqa: F401  註冊資料表
from school_admin.routers import auth, schedules, periods, rooms, timetable, data
from school_admin.utils.errors import AppError

import time
import logging
from school_admin.logging_config import setup_logging


setup_logging()
logger = logging.getLogger("school_admin")


# 建立資料表（若不存在）
Base.metadata.create_all(bind=engine)

app = FastAPI(title="School Admin Scheduling Backend", version="1.0.0")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%dms)", request.method, request.url.path, response.status_code, ms)
        return response
    except Exception:
        ms = int((time.time() - start) * 1000)
        logger.exception("Unhandled error %s %s (%dms)", request.method, request.url.path, ms)
        raise


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 錯誤一律回 {"error": ..., "details": ...}
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = dict(exc.detail)
        content.setdefault("error", "Request failed")
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field_path = list(error.get("loc", []))
        # body / query 前綴不需要
        if len(field_path) > 1 and field_path[0] in ("body", "query", "path"):
            field_path = field_path[1:]
        field_name = ".".join(str(p) for p in field_path)
        msg = error.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{field_name}: {msg}")

    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": ", ".join(messages) or "Invalid request data"},
    )


# Routers
app.include_router(auth.router)
app.include_router(schedules.router)
app.include_router(periods.router)
app.include_router(rooms.router)
app.include_router(timetable.router)
app.include_router(data.router)


@app.get("/")
def root():
    return {"message": "School admin backend is running!"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
