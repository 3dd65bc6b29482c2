"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from meo_ranker.config import NOT_FOUND_VALUE


@dataclass
class ResultEntry:
    """検索結果フィードの1件を表す."""

    display_name: str | None  # 店舗名（抽出できなければ None）
    position: int  # フィード内の順位（1始まり）


@dataclass(frozen=True)
class FeedMeasurement:
    """追加読み込み1回ごとの計測値."""

    entry_count: int
    scroll_height: int


class FailureReason(Enum):
    """順位取得失敗の理由。値はシートに書き込む文字列."""

    NAVIGATION = "取得失敗(遷移エラー)"
    SELECTOR_TIMEOUT = "取得失敗(タイムアウト)"
    EXTRACTION = "取得失敗(抽出エラー)"
    OPERATION_TIMEOUT = "取得失敗(処理タイムアウト)"
    UNKNOWN = "取得失敗(エラー)"


class OutcomeStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class RankOutcome:
    """1キーワードの順位取得結果."""

    status: OutcomeStatus
    position: int | None = None
    reason: FailureReason | None = None

    @classmethod
    def found(cls, position: int) -> RankOutcome:
        if position < 1:
            raise ValueError(f"順位は 1 以上: {position}")
        return cls(OutcomeStatus.FOUND, position=position)

    @classmethod
    def not_found(cls) -> RankOutcome:
        return cls(OutcomeStatus.NOT_FOUND)

    @classmethod
    def failed(cls, reason: FailureReason) -> RankOutcome:
        return cls(OutcomeStatus.FAILED, reason=reason)

    def cell_value(self) -> int | str:
        """シートに書き込む値（順位 / 圏外 / 失敗理由）."""
        if self.status is OutcomeStatus.FOUND:
            return self.position
        if self.status is OutcomeStatus.NOT_FOUND:
            return NOT_FOUND_VALUE
        return self.reason.value

    def describe(self) -> str:
        if self.status is OutcomeStatus.FOUND:
            return f"{self.position}位"
        return str(self.cell_value())


@dataclass
class RunSummary:
    """1シート分の計測結果のサマリ."""

    sheet_name: str
    phrase_count: int = 0
    found: int = 0
    not_found: int = 0
    failed: int = 0
    write_errors: int = 0
    elapsed: float = 0.0

    def record(self, outcome: RankOutcome) -> None:
        if outcome.status is OutcomeStatus.FOUND:
            self.found += 1
        elif outcome.status is OutcomeStatus.NOT_FOUND:
            self.not_found += 1
        else:
            self.failed += 1
