"""MEO 順位計測 API.

POST /meo-ranking で計測を受け付け、バックグラウンドで実行する。
受付時点で応答を返し、計測結果はスプレッドシートにのみ反映される。
"""

from __future__ import annotations

import logging
import os
import platform
import time
from contextlib import asynccontextmanager
from typing import Optional

import anyio
import uvicorn
from fastapi import APIRouter, BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from meo_ranker.browser import (
    active_session_count,
    request_shutdown,
    reset_shutdown,
    wait_for_sessions,
)
from meo_ranker.config import Settings
from meo_ranker.orchestrator import run_in_background
from meo_ranker.sheets import SheetStore

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 30.0

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    reset_shutdown()
    settings = app.state.settings
    app.state.store = SheetStore.from_settings(settings)
    app.state.started_at = time.time()
    logger.info("MEO サーバー起動: spreadsheet=%s", settings.spreadsheet_id)
    yield
    logger.info("終了処理: 稼働中のブラウザセッション %d 件", active_session_count())
    request_shutdown()
    await anyio.to_thread.run_sync(wait_for_sessions, SHUTDOWN_GRACE_SECONDS)


def create_app(settings: Settings) -> FastAPI:
    """設定済みの API アプリケーションを作る."""
    app = FastAPI(
        title="MEO Ranker API",
        description="Google マップ検索順位の計測",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


class RankerServer(uvicorn.Server):
    """終了シグナルを受けた時点で稼働中のクロールに中断を要求する.

    uvicorn は処理中のリクエスト（バックグラウンドタスクを含む）の完了を待ってから
    lifespan の終了処理に入るため、lifespan だけでは中断要求が間に合わない。
    """

    def handle_exit(self, sig, frame) -> None:
        logger.info("終了シグナル受信: sig=%s", sig)
        request_shutdown()
        super().handle_exit(sig, frame)


def serve(settings: Settings) -> None:
    config = uvicorn.Config(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=int(SHUTDOWN_GRACE_SECONDS),
    )
    RankerServer(config).run()


class RankingRequest(BaseModel):
    """計測リクエスト."""

    model_config = ConfigDict(populate_by_name=True)

    sheet_name: Optional[str] = Field(None, alias="sheetName", description="対象シート名")
    store_name: Optional[str] = Field(None, alias="storeName", description="照合する店舗名（省略時はシート名）")


@router.post("/meo-ranking", status_code=202)
def accept_ranking(payload: RankingRequest, background_tasks: BackgroundTasks, request: Request):
    sheet_name = (payload.sheet_name or "").strip()
    if not sheet_name:
        logger.error("シート名が指定されていません")
        raise HTTPException(status_code=400, detail="シート名が指定されていません")

    store_name = (payload.store_name or "").strip() or None
    logger.info("計測受付: sheet=%s", sheet_name)
    background_tasks.add_task(
        run_in_background,
        sheet_name,
        request.app.state.settings,
        request.app.state.store,
        store_name,
    )
    return {"status": "accepted", "sheetName": sheet_name}


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/diagnostics")
def diagnostics(request: Request):
    """プロセス・環境の状態（秘密情報は含めない）."""
    settings = request.app.state.settings
    return {
        "pid": os.getpid(),
        "uptime_seconds": round(time.time() - request.app.state.started_at, 1),
        "python": platform.python_version(),
        "platform": platform.platform(),
        "active_browser_sessions": active_session_count(),
        "spreadsheet_configured": bool(settings.spreadsheet_id),
        "credentials_file_present": settings.credentials_file.is_file(),
        "browser_executable_path": settings.browser_executable_path,
        "headless": settings.headless,
    }
