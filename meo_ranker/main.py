"""MEO 順位計測 — メインエントリーポイント.

  meo-ranker                       API サーバーを起動
  meo-ranker --sheet 店舗A         シート1枚分をその場で計測
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from datetime import datetime

from meo_ranker.api import serve
from meo_ranker.config import LOG_DIR, load_settings
from meo_ranker.errors import ConfigurationMissing, TransportError
from meo_ranker.orchestrator import run
from meo_ranker.sheets import SheetStore


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / f"ranker_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def _exit_on_sigterm(signum, frame) -> None:
    # SystemExit で with 文を抜けさせ、ブラウザを確実に閉じる
    sys.exit(128 + signum)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="meo-ranker", description="Google マップ検索順位の計測")
    parser.add_argument("--sheet", help="このシートだけを計測して終了する")
    parser.add_argument("--store", help="照合する店舗名（省略時はシート名）")
    args = parser.parse_args(argv)

    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        settings = load_settings()
    except ConfigurationMissing as e:
        logger.error("設定エラー: %s", e)
        return 1

    if not args.sheet:
        serve(settings)
        return 0

    signal.signal(signal.SIGTERM, _exit_on_sigterm)
    try:
        run(args.sheet, settings, SheetStore.from_settings(settings), store_name=args.store)
    except TransportError as e:
        logger.error("計測を中止しました: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
