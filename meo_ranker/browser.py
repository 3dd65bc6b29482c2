"""Playwright によるブラウザセッション管理モジュール.

1セッション = 1ブラウザプロセス。with 文で確保し、成功・失敗を問わず必ず解放する。
失敗したセッションは再利用しない。
"""

from __future__ import annotations

import logging
import threading
import time

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from meo_ranker.config import (
    BROWSER_ARGS,
    ENTRY_SELECTOR,
    FEED_SELECTOR,
    INTERSTITIAL_SELECTORS,
    INTERSTITIAL_TIMEOUT_MS,
    NAVIGATION_TIMEOUT_MS,
    OPERATION_TIMEOUT_MS,
    RESULTS_TIMEOUT_MS,
    USER_AGENT,
    Settings,
)
from meo_ranker.errors import (
    NavigationTimeout,
    NoResultsTimeout,
    OperationTimeout,
    SelectorExtractionFailure,
    SessionError,
)
from meo_ranker.models import FeedMeasurement

logger = logging.getLogger(__name__)

# フィードのスクロール領域を末尾まで送る
_REVEAL_SCRIPT = """
(feedSelector) => {
  const feed = document.querySelector(feedSelector);
  if (feed) {
    feed.scrollTop = feed.scrollHeight;
  } else {
    window.scrollTo(0, document.body.scrollHeight);
  }
}
"""

_MEASURE_SCRIPT = """
([feedSelector, entrySelector]) => {
  const feed = document.querySelector(feedSelector);
  return {
    count: document.querySelectorAll(entrySelector).length,
    height: feed ? feed.scrollHeight : document.body.scrollHeight,
  };
}
"""

# --- 稼働中セッションの管理（終了処理用） ---
_active_sessions: set[RenderingSession] = set()
_registry_lock = threading.Lock()
_shutdown = threading.Event()


def request_shutdown() -> None:
    """稼働中のクロールに中断を要求する."""
    _shutdown.set()


def reset_shutdown() -> None:
    """中断要求を取り消す（サーバー起動時）."""
    _shutdown.clear()


def shutdown_requested() -> bool:
    return _shutdown.is_set()


def active_session_count() -> int:
    with _registry_lock:
        return len(_active_sessions)


def wait_for_sessions(timeout: float) -> bool:
    """全セッションが解放されるまで待つ.

    Returns:
        時間内に全て解放されれば True
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if active_session_count() == 0:
            return True
        time.sleep(0.2)
    remaining = active_session_count()
    if remaining:
        logger.warning("終了待ちタイムアウト: 未解放のブラウザセッション %d 件", remaining)
    return remaining == 0


class RenderingSession:
    """使い捨てのブラウザセッション."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def __enter__(self) -> RenderingSession:
        if shutdown_requested():
            raise SessionError("終了処理中のためセッションを開始できません")
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.settings.headless,
                args=BROWSER_ARGS,
                executable_path=self.settings.browser_executable_path,
            )
            self._context = self._browser.new_context(
                user_agent=USER_AGENT,
                locale=self.settings.search_language,
            )
            self._page = self._context.new_page()
            self._page.set_default_timeout(OPERATION_TIMEOUT_MS)
        except PlaywrightError as e:
            self.close()
            raise SessionError(f"ブラウザ起動失敗: {e}") from e
        except Exception:
            self.close()
            raise

        with _registry_lock:
            _active_sessions.add(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """確保したリソースを逆順に解放する。1つ失敗しても残りは解放する."""
        try:
            for name in ("_page", "_context", "_browser", "_playwright"):
                self._release(name)
        finally:
            with _registry_lock:
                _active_sessions.discard(self)

    def _release(self, name: str) -> None:
        resource = getattr(self, name)
        if resource is None:
            return
        setattr(self, name, None)
        try:
            if name == "_playwright":
                resource.stop()
            else:
                resource.close()
        except Exception:
            logger.warning("%s の解放に失敗", name.lstrip("_"), exc_info=True)

    @property
    def page(self):
        if self._page is None:
            raise SessionError("セッションは開始されていないか解放済みです")
        return self._page

    def navigate(self, url: str) -> None:
        try:
            self.page.goto(url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"遷移タイムアウト: {url}") from e
        except PlaywrightError as e:
            raise NavigationTimeout(f"遷移失敗: {url}: {e}") from e

    def dismiss_interstitial(self) -> bool:
        """同意画面などが出ていれば閉じる。見つからなくてもエラーにしない.

        Returns:
            閉じた場合 True
        """
        for selector in INTERSTITIAL_SELECTORS:
            try:
                self.page.locator(selector).first.click(timeout=INTERSTITIAL_TIMEOUT_MS)
            except PlaywrightTimeoutError:
                continue
            except PlaywrightError as e:
                logger.debug("同意画面の処理をスキップ: selector=%s, error=%s", selector, e)
                continue
            logger.info("同意画面を閉じました: selector=%s", selector)
            return True
        return False

    def wait_for_results(self) -> None:
        try:
            self.page.wait_for_selector(ENTRY_SELECTOR, state="visible", timeout=RESULTS_TIMEOUT_MS)
        except PlaywrightTimeoutError as e:
            raise NoResultsTimeout(f"検索結果が表示されません: selector={ENTRY_SELECTOR}") from e
        except PlaywrightError as e:
            raise SessionError(f"検索結果待機中のエラー: {e}") from e

    def reveal_more(self) -> None:
        """フィード末尾までスクロールして追加読み込みを促す."""
        try:
            self.page.evaluate(_REVEAL_SCRIPT, FEED_SELECTOR)
        except PlaywrightTimeoutError as e:
            raise OperationTimeout("追加読み込みタイムアウト") from e
        except PlaywrightError as e:
            raise SessionError(f"追加読み込み失敗: {e}") from e

    def measure(self) -> FeedMeasurement:
        try:
            data = self.page.evaluate(_MEASURE_SCRIPT, [FEED_SELECTOR, ENTRY_SELECTOR])
        except PlaywrightTimeoutError as e:
            raise OperationTimeout("計測タイムアウト") from e
        except PlaywrightError as e:
            raise SessionError(f"計測失敗: {e}") from e
        return FeedMeasurement(entry_count=int(data["count"]), scroll_height=int(data["height"]))

    def entry_html(self) -> list[str]:
        """表示中の検索結果要素の outerHTML を表示順に返す."""
        try:
            return self.page.locator(ENTRY_SELECTOR).evaluate_all(
                "els => els.map(el => el.outerHTML)"
            )
        except PlaywrightTimeoutError as e:
            raise OperationTimeout("検索結果の読み取りタイムアウト") from e
        except PlaywrightError as e:
            raise SelectorExtractionFailure(f"検索結果の読み取り失敗: {e}") from e
