"""例外定義."""


class RankerError(Exception):
    """本パッケージの例外の基底クラス."""


class ConfigurationMissing(RankerError):
    """必須設定・認証情報の欠落。起動時に致命的."""


class TransportError(RankerError):
    """スプレッドシートとの通信失敗."""


class SessionError(RankerError):
    """ブラウザセッションの確保・操作の失敗."""


class NavigationTimeout(SessionError):
    """検索ページへの遷移失敗."""


class NoResultsTimeout(SessionError):
    """検索結果が時間内に表示されなかった."""


class SelectorExtractionFailure(SessionError):
    """検索結果要素の読み取り失敗."""


class OperationTimeout(SessionError):
    """追加読み込みなど個別操作のタイムアウト."""
