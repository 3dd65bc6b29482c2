"""順位の書き込み先（行・列）を決めるモジュール.

列はキーワード欄と同じ2つの帯に対応する:
  帯A: R〜W 列（キーワード 0〜5 番目）
  帯B: AA〜AO 列（キーワード 6〜20 番目）
行は計測1回につき1行。開始時点で順位欄に値がある最終行の次の行を使う。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from gspread.utils import a1_to_rowcol, rowcol_to_a1

from meo_ranker.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Band:
    """キーワード欄の連続した列範囲."""

    start_column: int  # 1始まり
    width: int

    @property
    def end_column(self) -> int:
        return self.start_column + self.width - 1

    def a1_range(self) -> str:
        """列全体の A1 表記 (例: R:W)."""
        start = rowcol_to_a1(1, self.start_column)[:-1]
        end = rowcol_to_a1(1, self.end_column)[:-1]
        return f"{start}:{end}"


BANDS = (
    Band(start_column=a1_to_rowcol("R1")[1], width=6),
    Band(start_column=a1_to_rowcol("AA1")[1], width=15),
)
SLOT_COUNT = sum(band.width for band in BANDS)


class OccupancySource(Protocol):
    def last_occupied_row(self, sheet_name: str, ranges: list[str]) -> int: ...


def column_of(phrase_index: int) -> int:
    """キーワードの番号（0始まり）を書き込み列番号（1始まり）に変換する."""
    offset = phrase_index
    if offset >= 0:
        for band in BANDS:
            if offset < band.width:
                return band.start_column + offset
            offset -= band.width
    raise ValueError(f"キーワード番号が範囲外です: {phrase_index} (0〜{SLOT_COUNT - 1})")


def rank_column_ranges() -> list[str]:
    return [band.a1_range() for band in BANDS]


@dataclass(frozen=True)
class BatchPlacement:
    """1回の計測で使う書き込み先."""

    target_row: int

    def column_of(self, phrase_index: int) -> int:
        return column_of(phrase_index)


def allocate(
    store: OccupancySource, sheet_name: str, phrase_count: int, fallback_row: int = 2
) -> BatchPlacement:
    """今回の計測結果を書き込む行を決める.

    使用行の取得に失敗した場合は計測を止めず fallback_row を使う。
    """
    if phrase_count > SLOT_COUNT:
        logger.warning("キーワード数 %d が書き込み枠 %d を超えています", phrase_count, SLOT_COUNT)

    try:
        last_row = store.last_occupied_row(sheet_name, rank_column_ranges())
    except TransportError as e:
        logger.error("書き込み行の決定に失敗。%d 行目を使用します: %s", fallback_row, e)
        return BatchPlacement(target_row=fallback_row)

    placement = BatchPlacement(target_row=last_row + 1)
    logger.info("書き込み行: sheet=%s, row=%d", sheet_name, placement.target_row)
    return placement
