"""店舗名の正規化と一致判定."""

from __future__ import annotations

import unicodedata
from urllib.parse import unquote


def normalize(text: str | None) -> str:
    """比較用に文字列を正規化する.

    None は空文字扱い。URL エンコードされていればデコードし、
    空白・句読点・記号 (Unicode の P*/S* カテゴリ)・書式文字 (Cf) を除去して小文字化する。
    不正なエンコードは元の文字列のまま処理する。
    """
    if text is None:
        return ""
    text = str(text)
    try:
        decoded = unquote(text, errors="strict")
    except UnicodeDecodeError:
        decoded = text
    return "".join(ch for ch in decoded if not _is_noise(ch)).lower()


def _is_noise(ch: str) -> bool:
    # 空白・句読点・記号に加え、ゼロ幅スペースや BOM などの書式文字 (Cf) も除く
    category = unicodedata.category(ch)
    return ch.isspace() or category[0] in ("P", "S") or category == "Cf"


def matches(display_name: str | None, entity_name: str | None) -> bool:
    """表示名に対象店舗名が含まれていれば True."""
    target = normalize(entity_name)
    if not target:
        return False
    return target in normalize(display_name)
