"""
Sarkari Pulse — Scrape Session
Per-run browser state. One session is owned by one aggregator run and
closed when the run ends; nothing about the browser lives at module level.
"""

import uuid

from sarkari_pulse.utils.logger import logger


class ScrapeSession:
    """Holds the run id and a lazily started headless Chrome driver."""

    def __init__(self, user_agent: str, browser_enabled: bool = True):
        self.run_id = uuid.uuid4().hex[:12]
        self.user_agent = user_agent
        self.browser_enabled = browser_enabled
        self._driver = None
        self._browser_failed = False

    @property
    def browser_started(self) -> bool:
        return self._driver is not None

    def get_driver(self):
        """Return the Selenium driver, starting it on first use. None if unavailable."""
        if self._driver is not None:
            return self._driver
        if not self.browser_enabled or self._browser_failed:
            return None

        try:
            from selenium import webdriver
            from selenium.common.exceptions import WebDriverException
            from selenium.webdriver.chrome.options import Options
        except ImportError as e:
            logger.warning(f"Selenium not importable, rendered pages fall back to plain GET: {e}")
            self._browser_failed = True
            return None

        options = Options()
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_argument("--window-size=1920,1080")
        options.add_argument(f"--user-agent={self.user_agent}")

        try:
            self._driver = webdriver.Chrome(options=options)
            logger.info(f"🌐 [{self.run_id}] Headless browser started")
        except WebDriverException as e:
            logger.warning(f"Failed to start headless browser, falling back to plain GET: {e}")
            self._browser_failed = True
            return None
        return self._driver

    def close(self):
        if self._driver is None:
            return
        try:
            self._driver.quit()
            logger.info(f"🌐 [{self.run_id}] Browser closed")
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")
        finally:
            self._driver = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
