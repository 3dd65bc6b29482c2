"""browser モジュールのモックテスト."""

import threading
from pathlib import Path
from unittest.mock import patch

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from meo_ranker.browser import RenderingSession, active_session_count, wait_for_sessions
from meo_ranker.config import Settings
from meo_ranker.errors import (
    NavigationTimeout,
    NoResultsTimeout,
    SelectorExtractionFailure,
    SessionError,
)
from meo_ranker.models import FeedMeasurement

SETTINGS = Settings(spreadsheet_id="sheet-id", credentials_file=Path("creds.json"))


@pytest.fixture
def playwright_mock():
    with patch("meo_ranker.browser.sync_playwright") as mock_sync:
        pw = mock_sync.return_value.start.return_value
        yield pw


def _page(pw):
    return pw.chromium.launch.return_value.new_context.return_value.new_page.return_value


class TestLifecycle:
    """セッションの確保と解放のテスト."""

    def test_release_on_exit(self, playwright_mock):
        browser = playwright_mock.chromium.launch.return_value

        with RenderingSession(SETTINGS):
            assert active_session_count() == 1

        assert active_session_count() == 0
        browser.close.assert_called_once()
        playwright_mock.stop.assert_called_once()

    def test_release_on_error(self, playwright_mock):
        browser = playwright_mock.chromium.launch.return_value

        with pytest.raises(NavigationTimeout):
            with RenderingSession(SETTINGS) as session:
                _page(playwright_mock).goto.side_effect = PlaywrightTimeoutError("timeout")
                session.navigate("https://www.google.com/maps/search/x/")

        browser.close.assert_called_once()
        assert active_session_count() == 0

    def test_launch_failure(self, playwright_mock):
        playwright_mock.chromium.launch.side_effect = PlaywrightError("no chromium")

        with pytest.raises(SessionError):
            with RenderingSession(SETTINGS):
                pass

        playwright_mock.stop.assert_called_once()
        assert active_session_count() == 0


class TestOperations:
    """各操作の例外変換のテスト."""

    def test_interstitial_not_found_is_not_error(self, playwright_mock):
        page = _page(playwright_mock)
        page.locator.return_value.first.click.side_effect = PlaywrightTimeoutError("timeout")

        with RenderingSession(SETTINGS) as session:
            assert session.dismiss_interstitial() is False

    def test_interstitial_dismissed(self, playwright_mock):
        with RenderingSession(SETTINGS) as session:
            assert session.dismiss_interstitial() is True

    def test_no_results(self, playwright_mock):
        _page(playwright_mock).wait_for_selector.side_effect = PlaywrightTimeoutError("timeout")

        with RenderingSession(SETTINGS) as session:
            with pytest.raises(NoResultsTimeout):
                session.wait_for_results()

    def test_measure(self, playwright_mock):
        _page(playwright_mock).evaluate.return_value = {"count": 20, "height": 4800}

        with RenderingSession(SETTINGS) as session:
            assert session.measure() == FeedMeasurement(entry_count=20, scroll_height=4800)

    def test_entry_html_failure(self, playwright_mock):
        locator = _page(playwright_mock).locator.return_value
        locator.evaluate_all.side_effect = PlaywrightError("detached")

        with RenderingSession(SETTINGS) as session:
            with pytest.raises(SelectorExtractionFailure):
                session.entry_html()

    def test_closed_session_not_reused(self, playwright_mock):
        session = RenderingSession(SETTINGS)
        with session:
            pass
        with pytest.raises(SessionError):
            session.navigate("https://www.google.com/maps/search/x/")


class TestReleaseOnUnexpectedError:
    """Playwright 以外の例外でも解放と登録解除が行われること."""

    def test_close_error_still_stops_playwright(self, playwright_mock):
        _page(playwright_mock).close.side_effect = RuntimeError("pipe closed")
        browser = playwright_mock.chromium.launch.return_value

        with RenderingSession(SETTINGS):
            pass

        browser.close.assert_called_once()
        playwright_mock.stop.assert_called_once()
        assert active_session_count() == 0

    def test_startup_error_is_raised_and_released(self, playwright_mock):
        browser = playwright_mock.chromium.launch.return_value
        browser.new_context.side_effect = RuntimeError("bad locale")

        with pytest.raises(RuntimeError):
            with RenderingSession(SETTINGS):
                pass

        browser.close.assert_called_once()
        playwright_mock.stop.assert_called_once()
        assert active_session_count() == 0


class TestWaitForSessions:
    """wait_for_sessions のテスト."""

    def test_no_sessions(self):
        assert wait_for_sessions(0.5) is True

    def test_timeout_while_session_open(self, playwright_mock):
        with RenderingSession(SETTINGS):
            assert wait_for_sessions(0.3) is False

        assert wait_for_sessions(0.3) is True

    def test_returns_when_released(self, playwright_mock):
        session = RenderingSession(SETTINGS).__enter__()
        timer = threading.Timer(0.2, session.close)
        timer.start()
        try:
            assert wait_for_sessions(5.0) is True
        finally:
            timer.cancel()
            session.close()
