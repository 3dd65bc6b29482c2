"""検索結果1件から店舗名を取り出す抽出戦略.

取得戦略（上から順に試す）:
  1. 要素内リンクの aria-label（主戦略）
  2. 要素自身の aria-label
  3. 見出しテキスト（フォールバック）

いずれも空なら None を返し、呼び出し側はその要素をスキップする。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from bs4 import BeautifulSoup, Tag

from meo_ranker.config import TITLE_SELECTOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionAttempt:
    """抽出手段1つ分."""

    name: str
    extract: Callable[[Tag], str | None]


def _anchor_label(root: Tag) -> str | None:
    anchor = root.select_one("a[aria-label]")
    return anchor.get("aria-label") if anchor else None


def _own_label(root: Tag) -> str | None:
    return root.get("aria-label")


def _title_text(root: Tag) -> str | None:
    title = root.select_one(TITLE_SELECTOR)
    return title.get_text(" ", strip=True) if title else None


DEFAULT_ATTEMPTS = (
    ExtractionAttempt("anchor-aria-label", _anchor_label),
    ExtractionAttempt("entry-aria-label", _own_label),
    ExtractionAttempt("title-text", _title_text),
)


class ExtractionStrategy:
    """抽出手段を順番に試して最初に得られた表示名を返す."""

    def __init__(self, attempts: tuple[ExtractionAttempt, ...] = DEFAULT_ATTEMPTS):
        self.attempts = attempts

    def extract_display_name(self, entry_html: str) -> str | None:
        """検索結果要素の outerHTML から表示名を取り出す.

        Returns:
            前後空白を除いた表示名。取れなければ None。
        """
        soup = BeautifulSoup(entry_html or "", "html.parser")
        root = soup.find(True)
        if root is None:
            return None

        for attempt in self.attempts:
            value = attempt.extract(root)
            if value and value.strip():
                return value.strip()
            logger.debug("抽出手段 %s では取得できず", attempt.name)
        return None
