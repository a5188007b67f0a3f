"""FastAPI adapter for the proxy endpoints."""

from fastapi import APIRouter, Request, Response

from netobservpy.adapters.frameworks.handlers import HandlerResponse, ProxyHandlers


def _to_response(response: HandlerResponse) -> Response:
    return Response(
        content=response.body,
        status_code=response.status,
        media_type=response.content_type,
    )


def _query_params(request: Request) -> dict[str, list[str]]:
    params = request.query_params
    return {key: params.getlist(key) for key in params.keys()}


def create_proxy_router(handlers: ProxyHandlers) -> APIRouter:
    """Create a FastAPI router with the proxy endpoints.

    Args:
        handlers: Shared request handlers.

    Returns:
        APIRouter with the /api/loki, /api/prometheus and /metrics endpoints.
    """
    router = APIRouter()

    @router.get("/api/loki/flows")
    async def get_flows(request: Request) -> Response:
        """Raw flow records, passed through from Loki."""
        return _to_response(await handlers.get_flows(_query_params(request)))

    @router.get("/api/loki/topology")
    async def get_topology(request: Request) -> Response:
        """Topology aggregation, passed through from Loki."""
        return _to_response(await handlers.get_topology(_query_params(request)))

    @router.get("/api/prometheus/topology")
    async def get_metrics_topology(request: Request) -> Response:
        """Topology aggregation from Prometheus, as a matrix."""
        return _to_response(
            await handlers.get_metrics_topology(
                _query_params(request), request.headers.get("Authorization")
            )
        )

    @router.get("/api/prometheus/label/{label}/values")
    async def get_label_values(label: str, request: Request) -> Response:
        """Values of one label over the last three hours."""
        return _to_response(
            await handlers.get_label_values(
                label, _query_params(request), request.headers.get("Authorization")
            )
        )

    @router.get("/metrics")
    async def get_metrics() -> Response:
        """The proxy's own metrics in Prometheus text format."""
        return _to_response(await handlers.get_own_metrics())

    return router
