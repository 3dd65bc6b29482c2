"""normalizer モジュールのユニットテスト."""

from meo_ranker.normalizer import matches, normalize


class TestNormalize:
    """normalize のテスト."""

    def test_none_is_empty(self):
        assert normalize(None) == ""

    def test_strip_whitespace_and_punctuation(self):
        assert normalize("Cafe Sora!  (渋谷店)") == "cafesora渋谷店"

    def test_strip_unicode_symbols(self):
        """全角記号・絵文字なども除去されること."""
        assert normalize("カフェ・空★ ☕／本店") == "カフェ空本店"

    def test_strip_zero_width_and_bom(self):
        """ゼロ幅スペース・BOM などの書式文字も除去されること."""
        assert normalize("\ufeffCafe\u200bSora\u2060") == "cafesora"
        assert normalize("Cafe\u00a0Sora\u3000本店") == "cafesora本店"

    def test_lowercase(self):
        assert normalize("CAFE Sora") == "cafesora"

    def test_percent_decoded(self):
        assert normalize("Cafe%20Sora") == "cafesora"
        assert normalize("%E3%82%AB%E3%83%95%E3%82%A7") == "カフェ"

    def test_malformed_encoding_falls_back(self):
        """不正なエンコードでも例外にならないこと."""
        assert normalize("Cafe%E3%81Sora") == "cafee381sora"
        assert normalize("100%zz") == "100zz"

    def test_idempotent(self):
        for text in ["Cafe Sora", "カフェ・空 (渋谷)", "A%20B", "%E3%81", "", "ＡＢＣ！", "\u200bCafe\ufeff"]:
            once = normalize(text)
            assert normalize(once) == once


class TestMatches:
    """matches のテスト."""

    def test_containment(self):
        assert matches("カフェ空 (Cafe Sora) 渋谷店", "cafe sora")

    def test_case_and_punctuation_insensitive(self):
        assert matches("CAFE-SORA Shibuya", "Cafe Sora")

    def test_not_contained(self):
        assert not matches("Cafe Umi", "Cafe Sora")

    def test_empty_target_never_matches(self):
        assert not matches("Cafe Sora", "")
        assert not matches("Cafe Sora", "・・・")

    def test_none_display_name(self):
        assert not matches(None, "Cafe Sora")
