# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import colorlog
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, ConfigDict
from rich.console import Console

from repin_library import EventReconciler
from repin_library.events import ContentRequest, UnknownEventError, event_from_payload
from repin_library.order_store import JsonFileOrderStore, OrderStoreInterface
from repin_library.runtime_interface import RuntimeInterface
from repin_app.runtime_bridge import HttpRuntimeBridge
from repin_app.settings import AppSettings


# --- Pydantic Models ---
class EntityCommand(BaseModel):
    entity_id: int


class ContentMessage(BaseModel):
    type: str
    entity_id: int


class PinRemoval(BaseModel):
    url: str


class SettingsPayload(BaseModel):
    auto_track_pinned: bool


class RuntimeEventPayload(BaseModel):
    """One runtime feed event; fields beyond ``kind`` depend on the kind."""

    kind: str

    model_config = ConfigDict(extra="allow")


# --- Logging Configuration ---
class RepinDebugFilter(logging.Filter):
    """Keeps the debug file limited to DEBUG records from repin_library."""

    def filter(self, record):
        return record.levelno == logging.DEBUG and record.name.startswith(
            "repin_library"
        )


def _build_console_handler() -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    return handler


def configure_logging(log_dir: Path) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = _build_console_handler()
    console_handler.setLevel(logging.INFO)

    info_file_handler = logging.FileHandler(log_dir / "repin.log", encoding="utf-8")
    info_file_handler.setLevel(logging.INFO)
    info_file_handler.setFormatter(file_format)

    debug_file_handler = logging.FileHandler(log_dir / "repin_debug.log", encoding="utf-8")
    debug_file_handler.setLevel(logging.DEBUG)
    debug_file_handler.setFormatter(file_format)
    debug_file_handler.addFilter(RepinDebugFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(info_file_handler)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(debug_file_handler)

    # Silence other noisy loggers by setting their level higher than root
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# --- App Factory ---
api_key_header = APIKeyHeader(name="X-Repin-Key", auto_error=False)


def create_app(
    settings: AppSettings,
    runtime: Optional[RuntimeInterface] = None,
    store: Optional[OrderStoreInterface] = None,
) -> FastAPI:
    """
    Build the HTTP surface around one EventReconciler.

    ``runtime`` and ``store`` default to the HTTP bridge and the JSON file
    store named in ``settings``; tests pass in-memory ones instead.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        bridge = runtime or HttpRuntimeBridge(
            settings.bridge_url, timeout=settings.bridge_timeout
        )
        reconciler = EventReconciler(bridge, store or JsonFileOrderStore(settings.store_file))
        await reconciler.start()
        app.state.reconciler = reconciler

        if settings.apply_on_start:
            report = await reconciler.apply_now()
            if report is not None:
                logging.info(f"Applied stored pins on start: {report.as_dict()}")

        yield

        await reconciler.stop()
        if runtime is None and isinstance(bridge, HttpRuntimeBridge):
            await bridge.close()
        logging.info("Event reconciler closed.")

    app = FastAPI(lifespan=lifespan)

    def get_reconciler(request: Request) -> EventReconciler:
        """Dependency to get the reconciler instance from the app state."""
        return request.app.state.reconciler

    async def verify_api_key(key: Optional[str] = Depends(api_key_header)):
        """Dependency to verify the shared API key."""
        # If REPIN_API_KEY is not set or empty, skip verification (open access)
        if not settings.api_key:
            return key
        if not key or key != settings.api_key:
            raise HTTPException(status_code=401, detail="Invalid or missing API Key")
        return key

    @app.post("/events", status_code=202)
    async def post_event(
        payload: RuntimeEventPayload,
        wait: bool = False,
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        try:
            event = event_from_payload(payload.model_dump())
        except UnknownEventError as e:
            raise HTTPException(status_code=422, detail=str(e))
        task = reconciler.dispatch(event)
        if wait:
            await task
        return {"accepted": True, "kind": payload.kind}

    @app.post("/commands/apply")
    async def apply_now(
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        report = await reconciler.apply_now()
        if report is None:
            return {"applied": False}
        return {"applied": not report.noop, "report": report.as_dict()}

    @app.post("/commands/allow-close-once")
    async def allow_close_once(
        body: EntityCommand,
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        reconciler.allow_close_once(body.entity_id)
        return {"entity_id": body.entity_id, "override": True}

    @app.post("/commands/reset-to-origin")
    async def reset_to_origin(
        body: EntityCommand,
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        reset = await reconciler.reset_to_origin(body.entity_id)
        return {"entity_id": body.entity_id, "reset": reset}

    @app.post("/messages", status_code=202)
    async def content_message(
        body: ContentMessage,
        wait: bool = False,
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        task = reconciler.dispatch(ContentRequest(entity_id=body.entity_id, type=body.type))
        if wait:
            await task
        return {"accepted": True, "type": body.type}

    @app.get("/pins")
    async def list_pins(
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> List[Dict[str, Any]]:
        return await reconciler.list_pins()

    @app.delete("/pins")
    async def remove_pin(
        body: PinRemoval,
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        removed = await reconciler.remove_pin(body.url)
        return {"url": body.url, "removed": removed}

    @app.get("/settings")
    async def get_settings(
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        return {"auto_track_pinned": await reconciler.auto_track_enabled()}

    @app.put("/settings")
    async def put_settings(
        body: SettingsPayload,
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        if not await reconciler.set_auto_track(body.auto_track_pinned):
            raise HTTPException(status_code=503, detail="Could not persist settings")
        return {"auto_track_pinned": body.auto_track_pinned}

    @app.get("/status")
    async def status(
        reconciler: EventReconciler = Depends(get_reconciler),
        _=Depends(verify_api_key),
    ) -> Dict[str, Any]:
        return reconciler.snapshot()

    return app


# --- Entry Point ---
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pinned entity reconciliation service")
    parser.add_argument("--host", type=str, default=None, help="Host to bind the server to.")
    parser.add_argument("--port", type=int, default=None, help="Port to run the server on.")
    parser.add_argument(
        "--store-file", type=str, default=None, help="JSON file backing the pin store."
    )
    parser.add_argument(
        "--bridge-url", type=str, default=None, help="Base URL of the runtime bridge."
    )
    parser.add_argument(
        "--apply-on-start",
        action="store_true",
        help="Project stored pins onto the last-focused window once at startup.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    load_dotenv(Path.cwd() / ".env")
    settings = AppSettings.from_env()
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    if args.store_file:
        settings.store_file = Path(args.store_file)
    if args.bridge_url:
        settings.bridge_url = args.bridge_url.rstrip("/")
    if args.apply_on_start:
        settings.apply_on_start = True

    configure_logging(settings.log_dir)

    console = Console()
    key_display = (
        "[green]set[/green]" if settings.api_key else "[yellow]not set (open access)[/yellow]"
    )
    console.rule("[bold]repin[/bold]")
    console.print(f"Listening on {settings.host}:{settings.port}")
    console.print(f"Store file: {settings.store_file}")
    console.print(f"Runtime bridge: {settings.bridge_url}")
    console.print(f"API key: {key_display}")
    console.rule()

    import uvicorn

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
