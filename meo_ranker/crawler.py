"""Google マップ検索結果フィードから店舗の順位を求めるモジュール.

処理フロー:
  1. ブラウザセッションを確保し検索ページへ遷移（同意画面は可能なら閉じる）
  2. 最初の検索結果が表示されるまで待機
  3. フィードを追加読み込み（上限回数・上限件数・2回連続で伸びなし のいずれかで終了）
  4. 表示順に店舗名を抽出して照合、最初に一致した位置を順位とする
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable
from urllib.parse import quote

from meo_ranker.browser import RenderingSession, shutdown_requested
from meo_ranker.config import (
    REVEAL_INTERVAL_MAX,
    REVEAL_INTERVAL_MIN,
    SEARCH_URL_TEMPLATE,
    STALL_LIMIT,
    Settings,
)
from meo_ranker.errors import (
    NavigationTimeout,
    NoResultsTimeout,
    OperationTimeout,
    SelectorExtractionFailure,
    SessionError,
)
from meo_ranker.extraction import ExtractionStrategy
from meo_ranker.models import FailureReason, RankOutcome, ResultEntry
from meo_ranker.normalizer import matches

logger = logging.getLogger(__name__)

# 例外 → 失敗理由（サブクラスを先に判定する）
_FAILURE_REASONS: list[tuple[type[SessionError], FailureReason]] = [
    (NavigationTimeout, FailureReason.NAVIGATION),
    (NoResultsTimeout, FailureReason.SELECTOR_TIMEOUT),
    (SelectorExtractionFailure, FailureReason.EXTRACTION),
    (OperationTimeout, FailureReason.OPERATION_TIMEOUT),
]


def build_search_url(keyword: str, language: str = "ja") -> str:
    return SEARCH_URL_TEMPLATE.format(keyword=quote(keyword, safe=""), language=language)


def failure_reason_for(error: SessionError) -> FailureReason:
    for error_type, reason in _FAILURE_REASONS:
        if isinstance(error, error_type):
            return reason
    return FailureReason.UNKNOWN


def find_entity_rank(entries: list[ResultEntry], entity_name: str) -> int | None:
    """検索結果リストから対象店舗の順位を見つける.

    Returns:
        順位（1始まり）。見つからなければ None（圏外）。
    """
    for entry in entries:
        if not entry.display_name:
            logger.info("  %d件目: 店舗名を取得できないためスキップ", entry.position)
            continue
        logger.debug("  %d件目: %s", entry.position, entry.display_name)
        if matches(entry.display_name, entity_name):
            return entry.position
    return None


class FeedCrawler:
    """キーワード1件分の順位取得を行う."""

    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[Settings], RenderingSession] = RenderingSession,
        extraction: ExtractionStrategy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.extraction = extraction or ExtractionStrategy()
        self.sleep = sleep

    def crawl(self, keyword: str, entity_name: str) -> RankOutcome:
        """キーワードで検索し、対象店舗の順位を返す."""
        url = build_search_url(keyword, self.settings.search_language)
        logger.info("検索開始: keyword=%s, store=%s", keyword, entity_name)

        try:
            with self.session_factory(self.settings) as session:
                session.navigate(url)
                session.dismiss_interstitial()
                session.wait_for_results()
                limit = self._reveal(session)
                entries = self._collect_entries(session, limit)
        except SessionError as e:
            reason = failure_reason_for(e)
            logger.error("順位取得失敗: keyword=%s, reason=%s, error=%s", keyword, reason.name, e)
            return RankOutcome.failed(reason)

        logger.info("検索結果: %d 件の店舗を照合", len(entries))
        rank = find_entity_rank(entries, entity_name)
        if rank is None:
            logger.info("圏外: keyword=%s, store=%s (%d 件中)", keyword, entity_name, len(entries))
            return RankOutcome.not_found()

        logger.info("順位取得: keyword=%s → %d位", keyword, rank)
        return RankOutcome.found(rank)

    def _reveal(self, session: RenderingSession) -> int:
        """フィードを追加読み込みし、照合対象とする件数を返す."""
        max_entries = self.settings.max_entries
        current = session.measure()
        attempts = 0
        stalls = 0

        while (
            attempts < self.settings.max_reveal_attempts
            and current.entry_count < max_entries
            and stalls < STALL_LIMIT
        ):
            if shutdown_requested():
                raise SessionError("終了処理のため追加読み込みを中断")

            session.reveal_more()
            attempts += 1
            self.sleep(random.uniform(REVEAL_INTERVAL_MIN, REVEAL_INTERVAL_MAX))

            latest = session.measure()
            grew = (
                latest.entry_count > current.entry_count
                or latest.scroll_height > current.scroll_height
            )
            stalls = 0 if grew else stalls + 1
            current = latest
            logger.debug(
                "追加読み込み %d 回目: %d 件, height=%d",
                attempts, current.entry_count, current.scroll_height,
            )

        if stalls >= STALL_LIMIT:
            logger.info("フィード末尾に到達: %d 件 (%d 回)", current.entry_count, attempts)
        return min(current.entry_count, max_entries)

    def _collect_entries(self, session: RenderingSession, limit: int) -> list[ResultEntry]:
        html_list = session.entry_html()[:limit]
        return [
            ResultEntry(
                display_name=self.extraction.extract_display_name(html),
                position=i,
            )
            for i, html in enumerate(html_list, start=1)
        ]
