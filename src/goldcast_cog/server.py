# server.py
# HTTP host for the Cog contract: GetManifest, RunStep, RunSteps.
#
#   GET  /manifest   -> CogManifest
#   POST /run-step   -> RunStepResponse
#   POST /run-steps  -> NDJSON RunStepRequest stream in, NDJSON RunStepResponse stream out
#
# The bearer token arrives in the `token` header. A missing token is a
# configuration fault for the whole call (401), never a per-step outcome.

import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from redis.asyncio import Redis

from goldcast_cog.cache import CachingClientWrapper
from goldcast_cog.client import AuthenticationError, ClientWrapper, ResourceFetcher
from goldcast_cog.config import Settings
from goldcast_cog.models import CogManifest, Outcome, RunStepRequest, RunStepResponse
from goldcast_cog.registry import STEPS, StepRegistry

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Mapping[str, str]], ClientWrapper]


async def _lines(request: Request) -> AsyncIterator[bytes]:
    buffer = b""
    async for chunk in request.stream():
        buffer += chunk
        while b"\n" in buffer:
            line, buffer = buffer.split(b"\n", 1)
            if line.strip():
                yield line
    if buffer.strip():
        yield buffer


def create_app(
    settings: Settings | None = None,
    registry: StepRegistry | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    registry = registry or StepRegistry(STEPS)

    def default_factory(auth: Mapping[str, str]) -> ClientWrapper:
        return ClientWrapper(auth, base_url=settings.api_url, timeout=settings.timeout)

    make_client = client_factory or default_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.redis = Redis.from_url(settings.redis_url) if settings.redis_url else None
        logger.info("Cog ready with %d steps (cache %s)", len(registry.definitions),
                    "on" if app.state.redis else "off")
        yield
        if app.state.redis is not None:
            await app.state.redis.aclose()

    app = FastAPI(title="Goldcast Cog", version="0.1.0", lifespan=lifespan)
    app.state.redis = None

    def _client(token: str | None) -> ClientWrapper:
        try:
            return make_client({"token": token or ""})
        except AuthenticationError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    def _fetcher(client: ClientWrapper, run_request: RunStepRequest) -> ResourceFetcher:
        if app.state.redis is None:
            return client
        id_map = {
            "scenario_id": run_request.scenario_id,
            "requestor_id": run_request.requestor_id,
            "request_id": run_request.request_id,
        }
        return CachingClientWrapper(client, app.state.redis, id_map, ttl=settings.cache_ttl)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get("/manifest", response_model=CogManifest)
    async def get_manifest() -> CogManifest:
        return registry.manifest()

    @app.post("/run-step", response_model=RunStepResponse)
    async def run_step(run_request: RunStepRequest, token: str | None = Header(default=None)) -> RunStepResponse:
        client = _client(token)
        try:
            response = await registry.dispatch(run_request, _fetcher(client, run_request))
        finally:
            await client.aclose()
        logger.info("%s -> %s", run_request.step.step_id, response.outcome.name)
        return response

    @app.post("/run-steps")
    async def run_steps(request: Request, token: str | None = Header(default=None)) -> StreamingResponse:
        client = _client(token)

        async def responses() -> AsyncIterator[str]:
            fetcher: ResourceFetcher | None = None
            try:
                async for line in _lines(request):
                    try:
                        run_request = RunStepRequest.model_validate_json(line)
                    except ValidationError as exc:
                        logger.warning("Malformed step request: %s", exc)
                        response = RunStepResponse(
                            outcome=Outcome.ERROR,
                            message_format="Malformed step request: %s",
                            message_args=[str(exc)],
                        )
                        yield response.model_dump_json() + "\n"
                        continue

                    # One cache scope per stream, taken from its first request.
                    if fetcher is None:
                        fetcher = _fetcher(client, run_request)
                    response = await registry.dispatch(run_request, fetcher)
                    logger.info("%s -> %s", run_request.step.step_id, response.outcome.name)
                    yield response.model_dump_json() + "\n"
            finally:
                if isinstance(fetcher, CachingClientWrapper):
                    await fetcher.clear_cache()
                await client.aclose()

        return StreamingResponse(responses(), media_type="application/x-ndjson")

    return app
