from enum import Enum
from typing import Annotated, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .binding.errors import HeaderError
from .binding.signature import Header, HeaderBinder
from .config import METRICS_ENABLED
from .obs.prom import observe_binding, prometheus_latest
from .utils.logging import get_logger

load_dotenv()

app = FastAPI(title="hdrbind header binding demo")
log = get_logger()


class Tier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class ClientHeaders(BaseModel):
    x_client_id: str
    x_client_tier: Tier
    x_client_scopes: List[str]
    x_client_region: Optional[str] = None


class TraceHeaders(BaseModel):
    x_trace_id: str
    x_span_id: int
    x_sampled: Optional[bool] = None


def whoami(
    request_id: Annotated[str, Header("X-Request-ID")],
    user_agent: Annotated[Optional[str], Header()] = None,
    accept_language: Annotated[Optional[List[str]], Header()] = None,
):
    return {"request_id": request_id, "user_agent": user_agent, "accept_language": accept_language}


def quota(
    client: Annotated[ClientHeaders, Header()],
    limit: Annotated[int, Header("X-Rate-Limit"), Field(ge=1, le=1000)],
):
    return {"client": client, "limit": limit}


def trace(ctx: Annotated[Optional[TraceHeaders], Header()]):
    return {"trace": ctx}


def bound_endpoint(handler):
    """Wrap a header-bound handler as a Starlette endpoint."""
    binder = HeaderBinder(handler)

    async def endpoint(request: Request):
        try:
            result = binder(request.headers)
        except HeaderError as e:
            if METRICS_ENABLED:
                observe_binding(reason=getattr(e, "reason", "other"))
            raise
        if METRICS_ENABLED:
            observe_binding(reason="ok", params=len(binder.binding_set))
        return JSONResponse(jsonable_encoder(result))

    endpoint.__name__ = handler.__name__
    return endpoint


@app.exception_handler(HeaderError)
async def header_error_handler(request: Request, exc: HeaderError):
    log.info(f"{request.url.path}: {exc.kind} {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


app.add_api_route("/whoami", bound_endpoint(whoami), methods=["GET"])
app.add_api_route("/quota", bound_endpoint(quota), methods=["GET"])
app.add_api_route("/trace", bound_endpoint(trace), methods=["GET"])


@app.get("/__health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    body, content_type = prometheus_latest()
    return Response(content=body, media_type=content_type)
