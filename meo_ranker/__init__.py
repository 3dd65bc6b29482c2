"""Google マップ (MEO) 検索順位の計測."""
