from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, TypeAdapter

from olnode import __version__
from olnode.monitor.cache import CheckCache
from olnode.monitor.models import ChainView, ValidatorView

_VALIDATORS = TypeAdapter(List[ValidatorView])


@dataclass(frozen=True)
class StreamIntervals:
    """Seconds between events on each push endpoint."""

    check: float = 10.0
    chain: float = 10.0
    account: float = 60.0
    validators: float = 60.0


def sse_event(data: str) -> str:
    # One event per JSON document; JSON from pydantic never contains raw newlines.
    return f"data: {data}\n\n"


async def event_stream(read: Callable[[], str], interval_s: float) -> AsyncIterator[str]:
    """Emit the current cache value now, then once per interval, until the client goes away."""
    while True:
        yield sse_event(read())
        await asyncio.sleep(interval_s)


def _sse(read: Callable[[], str], interval_s: float) -> StreamingResponse:
    return StreamingResponse(
        event_stream(read, interval_s),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


def _dump(model: BaseModel) -> str:
    return model.model_dump_json()


def create_app(
    cache: CheckCache,
    *,
    account_file: Optional[Union[str, Path]] = None,
    static_dir: Optional[Union[str, Path]] = None,
    intervals: StreamIntervals = StreamIntervals(),
) -> FastAPI:
    app = FastAPI(title="0L Web Monitor", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/check")
    def check():
        return _sse(lambda: _dump(cache.read().items), intervals.check)

    @app.get("/chain_live")
    def chain_live():
        return _sse(lambda: _dump(cache.read().chain), intervals.chain)

    @app.get("/account")
    def account():
        return _sse(lambda: _dump(cache.read().account), intervals.account)

    @app.get("/validators")
    def validators():
        return _sse(lambda: _VALIDATORS.dump_json(cache.read().validators).decode("utf-8"), intervals.validators)

    @app.get("/vals", response_model=List[ValidatorView])
    def vals():
        return cache.read().validators

    @app.get("/chain", response_model=ChainView)
    def chain():
        return cache.read().chain

    @app.get("/epoch.json")
    def epoch():
        ci = cache.read().chain
        return {"epoch": ci.epoch, "waypoint": ci.waypoint}

    @app.get("/account.json")
    def account_json():
        if account_file is None:
            raise HTTPException(status_code=404, detail="No account manifest configured")
        try:
            content = Path(account_file).read_bytes()
        except OSError:
            raise HTTPException(status_code=404, detail="Account manifest not found") from None
        return Response(content=content, media_type="application/json")

    # Mounted last so the API routes win over same-named files.
    if static_dir is not None and Path(static_dir).is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")

    return app
