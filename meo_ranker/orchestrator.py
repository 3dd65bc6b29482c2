"""MEO 順位計測 — シート1枚分の計測処理.

処理フロー:
  1. シートからキーワードを取得（無ければ何もせず終了）
  2. 書き込み行を1回だけ決定
  3. キーワードを1件ずつ順番に検索し、順位を同じ行に書き込む
キーワード単位の失敗は失敗理由を書き込んで次へ進む。
"""

from __future__ import annotations

import logging
import time

from meo_ranker.allocator import SLOT_COUNT, allocate
from meo_ranker.browser import shutdown_requested
from meo_ranker.config import Settings
from meo_ranker.crawler import FeedCrawler
from meo_ranker.errors import TransportError
from meo_ranker.models import FailureReason, RankOutcome, RunSummary
from meo_ranker.sheets import SheetStore

logger = logging.getLogger(__name__)


def run(
    sheet_name: str,
    settings: Settings,
    store: SheetStore,
    crawler: FeedCrawler | None = None,
    store_name: str | None = None,
) -> RunSummary:
    """シート1枚分の順位計測を行う.

    Args:
        sheet_name: 対象シート名
        settings: 実行設定
        store: スプレッドシートの読み書き窓口
        crawler: 順位取得処理。省略時は settings から生成
        store_name: 照合する店舗名。省略時はシート名

    Raises:
        TransportError: キーワードの取得に失敗した場合
    """
    start_time = time.time()
    entity_name = store_name or sheet_name
    summary = RunSummary(sheet_name=sheet_name)
    logger.info("=== 順位計測 開始: sheet=%s, store=%s ===", sheet_name, entity_name)

    keywords = store.get_keywords(sheet_name)
    if not keywords:
        logger.warning("キーワードがありません。終了します: sheet=%s", sheet_name)
        return summary

    if len(keywords) > SLOT_COUNT:
        logger.warning("書き込み枠を超えるキーワードは無視します: %s", ", ".join(keywords[SLOT_COUNT:]))
        keywords = keywords[:SLOT_COUNT]
    summary.phrase_count = len(keywords)

    placement = allocate(store, sheet_name, len(keywords), settings.fallback_row)
    crawler = crawler or FeedCrawler(settings)

    # 並列にするとブラウザがリソースを圧迫するため順番に処理する
    for i, keyword in enumerate(keywords):
        if shutdown_requested():
            logger.warning("終了処理のため残り %d 件のキーワードを中断: sheet=%s", len(keywords) - i, sheet_name)
            break

        try:
            outcome = crawler.crawl(keyword, entity_name)
        except Exception:
            logger.exception("順位取得中の予期しないエラー: keyword=%s", keyword)
            outcome = RankOutcome.failed(FailureReason.UNKNOWN)

        summary.record(outcome)
        logger.info("  [%d] %s → %s", i, keyword, outcome.describe())

        try:
            store.write_cell(sheet_name, placement.target_row, placement.column_of(i), outcome.cell_value())
        except TransportError as e:
            summary.write_errors += 1
            logger.error("順位の書き込みに失敗: keyword=%s, error=%s", keyword, e)
        except Exception:
            summary.write_errors += 1
            logger.exception("順位の書き込み中の予期しないエラー: keyword=%s", keyword)

    summary.elapsed = time.time() - start_time
    logger.info("=== 順位計測 完了: sheet=%s ===", sheet_name)
    logger.info(
        "キーワード: %d 件, 順位取得: %d, 圏外: %d, 失敗: %d, 書き込みエラー: %d, 所要時間: %.1f 秒",
        summary.phrase_count, summary.found, summary.not_found,
        summary.failed, summary.write_errors, summary.elapsed,
    )
    return summary


def run_in_background(
    sheet_name: str,
    settings: Settings,
    store: SheetStore,
    store_name: str | None = None,
) -> None:
    """バックグラウンド実行用。例外はここで止めてログに残す."""
    try:
        run(sheet_name, settings, store, store_name=store_name)
    except Exception:
        logger.exception("順位計測が異常終了しました: sheet=%s", sheet_name)
