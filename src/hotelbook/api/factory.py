"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from hotelbook.observability.correlation import CORRELATION_ID_HEADER, correlation_scope

from .routers import public
from .routes import auth, hotels, reservations, rooms


def create_app() -> FastAPI:
    """Create the API app with correlation-ID middleware and all routers."""
    app = FastAPI(title="Hotel Booking API", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    app.include_router(public.router)
    app.include_router(auth.router)
    app.include_router(hotels.router)
    app.include_router(rooms.router)
    app.include_router(reservations.router)

    return app
