from dataclasses import dataclass
from typing import Optional

import requests
from loguru import logger

from .config import PingSettings

GOOGLE_PING_URL = 'https://www.google.com/webmasters/tools/ping'
YAHOO_PING_URL = 'http://search.yahooapis.com/SiteExplorerService/V1/updateNotification'
MSN_PING_URL = 'http://webmaster.live.com/ping.aspx'
ASK_PING_URL = 'http://submissions.ask.com/ping'


@dataclass(frozen=True)
class PingResult:
    engine: str
    url: str
    ok: bool
    status: Optional[int] = None
    error: Optional[str] = None


class SearchEngineNotifier:
    """Tells search engines where the new sitemap index is. One request per engine, no retries.

    Failures are logged and returned, never raised: the sitemaps are already written by then.
    """

    def __init__(self, settings: PingSettings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def endpoints(self, sitemap_url: str) -> list[tuple[str, str, dict]]:
        settings = self.settings
        endpoints = []
        if settings.google:
            endpoints.append(('google', GOOGLE_PING_URL, {'sitemap': sitemap_url}))
        if settings.yahoo:
            if settings.yahoo_app_id:
                endpoints.append(('yahoo', YAHOO_PING_URL, {'appid': settings.yahoo_app_id, 'url': sitemap_url}))
            else:
                logger.warning('Yahoo ping is enabled but no app id is configured, skipping it')
        if settings.msn:
            endpoints.append(('msn', MSN_PING_URL, {'siteMap': sitemap_url}))
        if settings.ask:
            endpoints.append(('ask', ASK_PING_URL, {'sitemap': sitemap_url}))
        return endpoints

    def notify(self, sitemap_url: str) -> list[PingResult]:
        results = []
        for engine, url, params in self.endpoints(sitemap_url):
            results.append(self._ping(engine, url, params))
        return results

    def _ping(self, engine: str, url: str, params: dict) -> PingResult:
        try:
            resp = self.session.get(url, params=params, timeout=self.settings.timeout)
        except requests.RequestException as e:
            logger.warning('Ping to {} failed: {}', engine, e)
            return PingResult(engine, url, ok=False, error=str(e))

        if not 200 <= resp.status_code < 300:
            logger.warning('Ping to {} answered HTTP {}', engine, resp.status_code)
            return PingResult(engine, url, ok=False, status=resp.status_code,
                              error=f'HTTP {resp.status_code}')

        logger.info('Pinged {} ({})', engine, resp.status_code)
        return PingResult(engine, url, ok=True, status=resp.status_code)
