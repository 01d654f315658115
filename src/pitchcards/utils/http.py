import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; pitchercards-bot/1.0)"


def get_session_with_retries(
    retries: int = 3,
    backoff_factor: float = 1.0,
    status_forcelist: tuple[int, ...] = (500, 502, 503, 504),
    user_agent: str = DEFAULT_USER_AGENT,
) -> requests.Session:
    """
    Create a requests session with automatic retry on transient failures.

    Args:
        retries: Number of retry attempts
        backoff_factor: Exponential backoff multiplier (1.0 means 1s, 2s, 4s waits)
        status_forcelist: HTTP status codes to retry on
        user_agent: Value sent in the User-Agent header

    Returns:
        Configured requests session
    """
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=list(status_forcelist),
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": user_agent})
    return session


def session_from_config(cfg: dict) -> requests.Session:
    http_cfg = cfg.get("http", {})
    return get_session_with_retries(
        retries=http_cfg.get("retries", 3),
        backoff_factor=http_cfg.get("backoff_factor", 1.0),
        user_agent=http_cfg.get("user_agent", DEFAULT_USER_AGENT),
    )
