"""共通フィクスチャ."""

import pytest

from meo_ranker.browser import reset_shutdown


@pytest.fixture(autouse=True)
def _clear_shutdown_flag():
    # 中断要求はプロセス全体で共有されるため、テストごとに戻す
    reset_shutdown()
    yield
    reset_shutdown()
