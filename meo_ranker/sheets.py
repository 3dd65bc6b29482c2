"""Google スプレッドシート操作モジュール.

キーワードの読み込みと順位の書き込みを行う。シート名 = 計測対象の店舗。
"""

from __future__ import annotations

import logging

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from gspread.exceptions import GSpreadException
from gspread.utils import ValueInputOption, a1_to_rowcol, rowcol_to_a1

from meo_ranker.config import KEYWORD_RANGES, Settings
from meo_ranker.errors import TransportError

logger = logging.getLogger(__name__)

# トークン更新の失敗 (RefreshError など) も通信失敗として扱う
_TRANSPORT_ERRORS = (GSpreadException, requests.RequestException, GoogleAuthError)


def _start_row(value_range) -> int:
    """ValueRange の開始行（1始まり）. 'シート1'!R1:W10 → 1"""
    a1 = getattr(value_range, "range", "") or ""
    first_cell = a1.rsplit("!", 1)[-1].split(":", 1)[0]
    try:
        row, _ = a1_to_rowcol(first_cell)
    except GSpreadException:
        return 1
    return row


class SheetStore:
    """スプレッドシート1つ分の読み書き窓口."""

    def __init__(self, client: gspread.Client, spreadsheet_id: str):
        self._client = client
        self._spreadsheet_id = spreadsheet_id
        self._spreadsheet = None

    @classmethod
    def from_settings(cls, settings: Settings) -> SheetStore:
        client = gspread.service_account(filename=str(settings.credentials_file))
        return cls(client, settings.spreadsheet_id)

    def _worksheet(self, sheet_name: str) -> gspread.Worksheet:
        if self._spreadsheet is None:
            self._spreadsheet = self._client.open_by_key(self._spreadsheet_id)
        return self._spreadsheet.worksheet(sheet_name)

    def get_keywords(self, sheet_name: str) -> list[str]:
        """シート1行目のキーワード欄（R1:W1, AA1:AO1）を順番に取得する.

        空欄は除外する。データが無ければ空リスト。

        Raises:
            TransportError: 読み込みに失敗した場合
        """
        logger.info("キーワード取得: sheet=%s, ranges=%s", sheet_name, ", ".join(KEYWORD_RANGES))
        try:
            value_ranges = self._worksheet(sheet_name).batch_get(KEYWORD_RANGES)
        except _TRANSPORT_ERRORS as e:
            raise TransportError(f"キーワード取得失敗: sheet={sheet_name}: {e}") from e

        keywords: list[str] = []
        for value_range in value_ranges:
            for row in list(value_range)[:1]:
                keywords.extend(
                    str(v).strip() for v in row if v is not None and str(v).strip()
                )

        logger.info("取得したキーワード: %s", ", ".join(keywords) or "(なし)")
        return keywords

    def last_occupied_row(self, sheet_name: str, ranges: list[str]) -> int:
        """指定範囲で値が入っている最も下の行番号を返す。空なら 0.

        Raises:
            TransportError: 読み込みに失敗した場合
        """
        try:
            value_ranges = self._worksheet(sheet_name).batch_get(ranges)
        except _TRANSPORT_ERRORS as e:
            raise TransportError(f"使用行の取得失敗: sheet={sheet_name}: {e}") from e

        last_row = 0
        for value_range in value_ranges:
            start = _start_row(value_range)
            for offset, row in enumerate(value_range):
                if any(v is not None and str(v).strip() for v in row):
                    last_row = max(last_row, start + offset)
        return last_row

    def write_cell(self, sheet_name: str, row: int, column: int, value: int | str) -> None:
        """セルに値をそのまま (RAW) 書き込む.

        Raises:
            TransportError: 書き込みに失敗した場合
        """
        label = rowcol_to_a1(row, column)
        logger.info("書き込み: %s!%s ← %s", sheet_name, label, value)
        try:
            self._worksheet(sheet_name).update(
                values=[[value]],
                range_name=label,
                value_input_option=ValueInputOption.raw,
            )
        except _TRANSPORT_ERRORS as e:
            raise TransportError(f"書き込み失敗: {sheet_name}!{label}: {e}") from e
