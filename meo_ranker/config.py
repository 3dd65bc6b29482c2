"""設定モジュール — 環境変数・定数定義.

環境変数は起動時に一度だけ読み込み、不変の Settings として各コンポーネントへ渡す。
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from meo_ranker.errors import ConfigurationMissing

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# --- Google マップ検索 ---
SEARCH_URL_TEMPLATE = "https://www.google.com/maps/search/{keyword}/?hl={language}"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",  # /dev/shm の容量不足対策
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

# --- セレクタ（変更されやすい外部仕様） ---
FEED_SELECTOR = 'div[role="feed"]'
ENTRY_SELECTOR = 'div[role="feed"] div[jsaction*="mouseover:pane"]'
INTERSTITIAL_SELECTORS = [
    'form[action*="consent"] button',
    'button[aria-label*="同意"]',
    'button[aria-label*="Accept all"]',
]
TITLE_SELECTOR = ".fontHeadlineSmall"

# --- タイムアウト（ミリ秒） ---
NAVIGATION_TIMEOUT_MS = 60_000
RESULTS_TIMEOUT_MS = 15_000
INTERSTITIAL_TIMEOUT_MS = 3_000
OPERATION_TIMEOUT_MS = 20_000

# --- 追加読み込み ---
REVEAL_INTERVAL_MIN = 1.0  # 秒
REVEAL_INTERVAL_MAX = 2.5  # 秒
STALL_LIMIT = 2  # 連続して伸びなければ打ち切る回数

# --- 書き込み値 ---
NOT_FOUND_VALUE = "圏外"

# --- シート ---
KEYWORD_RANGES = ["R1:W1", "AA1:AO1"]

# --- ログ ---
LOG_DIR = _PROJECT_ROOT / "logs"


@dataclass(frozen=True)
class Settings:
    """起動時に確定する実行設定."""

    spreadsheet_id: str
    credentials_file: Path
    browser_executable_path: str | None = None
    headless: bool = True
    search_language: str = "ja"
    max_reveal_attempts: int = 10
    max_entries: int = 120
    fallback_row: int = 2
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: tuple[str, ...] = ("*",)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationMissing(f"{name} は整数で指定してください: {raw!r}") from e


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return tuple(v.strip() for v in raw.split(",") if v.strip())


def load_settings(env_file: Path | None = None) -> Settings:
    """環境変数から Settings を組み立てる.

    Args:
        env_file: 読み込む .env のパス。省略時はプロジェクトルートの .env

    Raises:
        ConfigurationMissing: 必須の設定値・認証情報ファイルが無い場合
    """
    load_dotenv(env_file or _PROJECT_ROOT / ".env")

    spreadsheet_id = os.environ.get("SPREADSHEET_ID", "").strip()
    if not spreadsheet_id:
        raise ConfigurationMissing("SPREADSHEET_ID が設定されていません")

    credentials_file = Path(os.environ.get("GOOGLE_CREDENTIALS_FILE", "creds.json"))
    if not credentials_file.is_file():
        raise ConfigurationMissing(f"認証情報ファイルが見つかりません: {credentials_file}")

    fallback_row = _env_int("FALLBACK_ROW", 2)
    if fallback_row < 1:
        raise ConfigurationMissing(f"FALLBACK_ROW は 1 以上で指定してください: {fallback_row}")

    return Settings(
        spreadsheet_id=spreadsheet_id,
        credentials_file=credentials_file,
        browser_executable_path=os.environ.get("BROWSER_EXECUTABLE_PATH") or None,
        headless=_env_bool("HEADLESS", True),
        search_language=os.environ.get("SEARCH_LANGUAGE", "ja"),
        max_reveal_attempts=_env_int("MAX_REVEAL_ATTEMPTS", 10),
        max_entries=_env_int("MAX_ENTRIES", 120),
        fallback_row=fallback_row,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        cors_origins=_env_list("CORS_ORIGINS", ("*",)),
    )
