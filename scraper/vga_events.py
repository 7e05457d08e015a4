"""Scraper for the VGA Golf state events page."""
import logging
import re
import time
from typing import List, Optional

import requests
from bs4 import BeautifulSoup, NavigableString

from processor.models import RawListing

logger = logging.getLogger(__name__)

# "NV - Chimera Golf Club 4.4.26 - Las Vegas"
STATE_EVENT_PATTERN = re.compile(r'^([A-Z]{2})\s*-\s*(.+?)\s*-\s*(.+)$')
STATE_EVENT_NO_CITY_PATTERN = re.compile(r'^([A-Z]{2})\s*-\s*(.+)$')

# "[Mar 13 2026] UT - Sunbrook Golf Club - St. George"
DATE_EVENT_PATTERN = re.compile(r'^\[(.*?)\]\s+([A-Z]{2})\s*-\s*(.+?)\s*-\s*(.+)$')
DATE_EVENT_NO_CITY_PATTERN = re.compile(r'^\[(.*?)\]\s+([A-Z]{2})\s*-\s*(.+)$')

BRACKETED_DATE_PATTERN = re.compile(r'^\[(.*?)\]$')

# Calendar widgets render month, day and year on separate lines
MONTH_PATTERN = re.compile(r'^(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)$')
DAY_PATTERN = re.compile(r'^\d{1,2}$')
YEAR_PATTERN = re.compile(r'^20\d{2}$')

# Dates embedded in titles
TITLE_DATE_PATTERNS = [
    re.compile(r'\d{1,2}\.\d{1,2}\.\d{2,4}'),
    re.compile(r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2}', re.IGNORECASE),
    re.compile(r'\d{1,2}/\d{1,2}/\d{2,4}'),
]

MIN_TITLE_LENGTH = 5

# Elements that start a new text line; inline markup stays on its line
BLOCK_TAGS = [
    'address', 'article', 'aside', 'blockquote', 'dd', 'div', 'dl', 'dt',
    'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3', 'h4', 'h5',
    'h6', 'header', 'hr', 'li', 'main', 'nav', 'ol', 'p', 'pre', 'section',
    'table', 'td', 'th', 'tr', 'ul',
]

WHITESPACE_PATTERN = re.compile(r'\s+')


def extract_date(title: str) -> str:
    """
    Extract date text embedded in a title.

    Args:
        title: Listing title, e.g. "Chimera Golf Club 4.4.26"

    Returns:
        The first date-like substring, or an empty string
    """
    for pattern in TITLE_DATE_PATTERNS:
        match = pattern.search(title)
        if match:
            return match.group(0)
    return ''


def _is_plausible_title(title: str) -> bool:
    return 'http' not in title and len(title) >= MIN_TITLE_LENGTH


def page_lines(html_content: str) -> List[str]:
    """
    Split page HTML into visible text lines.

    Lines break at block elements and ``<br>`` only. Text inside inline
    elements such as ``<a>`` or ``<strong>`` joins the surrounding line, and
    source formatting whitespace collapses to single spaces.

    Args:
        html_content: HTML content of the page

    Returns:
        Non-empty, stripped text lines in page order
    """
    soup = BeautifulSoup(html_content, 'html.parser')

    # Exact type check leaves comments and script text out of get_text()
    for node in soup.find_all(string=True):
        if type(node) is NavigableString:
            node.replace_with(WHITESPACE_PATTERN.sub(' ', str(node)))

    for br in soup.find_all('br'):
        br.replace_with('\n')
    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before('\n')
        tag.append('\n')

    lines = (line.strip() for line in soup.get_text().split('\n'))
    return [line for line in lines if line]


class VGAEventsScraper:
    """Scraper for the VGA Golf state events listing."""

    BASE_URL = "https://vgagolf.org/state-events/"
    USER_AGENT = "vga-events/1.0 (github.com/pfrederiksen/vga-events)"

    def __init__(self, timeout: int = 30, url: Optional[str] = None):
        """
        Initialize the state events scraper.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            url: Page to scrape (default: the VGA Golf state events page)
        """
        self.timeout = timeout
        self.url = url or self.BASE_URL

    def fetch_listings(self) -> List[RawListing]:
        """
        Fetch listings from the state events page.

        Returns:
            List of RawListing objects in page order
        """
        logger.info(f"Fetching state events from {self.url}")

        html_content = self._fetch_html()
        listings = self.parse_listings(html_content)

        logger.info(f"Successfully fetched {len(listings)} listings")
        return listings

    def _fetch_html(self) -> str:
        """
        Fetch page HTML with retry logic.

        Returns:
            HTML content as string

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        max_retries = 3
        base_delay = 1  # seconds

        for attempt in range(max_retries):
            try:
                logger.info(f"Fetching events page (attempt {attempt + 1}/{max_retries})")
                response = requests.get(
                    self.url,
                    headers={'User-Agent': self.USER_AGENT},
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def parse_listings(self, html_content: str) -> List[RawListing]:
        """
        Parse listings from page HTML.

        The page text is walked line by line. A standalone date line (either
        "[Feb 13 2026]" or month, day and year on consecutive lines) applies
        to the next listing line that has no date of its own.

        Args:
            html_content: HTML content of the events page

        Returns:
            List of RawListing objects
        """
        listings = []
        current_date = ''
        month = day = ''

        for line in page_lines(html_content):
            if MONTH_PATTERN.match(line):
                month, day = line, ''
                continue
            if month and DAY_PATTERN.match(line):
                day = line
                continue
            if month and day and YEAR_PATTERN.match(line):
                current_date = f"{month} {day} {line}"
                continue

            try:
                listing, consumed_date = self._parse_line(line, current_date)
            except Exception as e:
                logger.warning(f"Failed to parse line '{line}': {e}")
                continue

            if listing is None:
                match = BRACKETED_DATE_PATTERN.match(line)
                if match:
                    current_date = match.group(1).strip()
                continue

            listings.append(listing)
            if consumed_date:
                current_date = ''

        return listings

    def _parse_line(self, line: str, current_date: str):
        """
        Parse a single text line.

        Args:
            line: Stripped text line
            current_date: Pending date from a preceding date line

        Returns:
            Tuple of (RawListing or None, whether the pending date was used)
        """
        match = DATE_EVENT_PATTERN.match(line)
        if match:
            date_text, state, title, city = (g.strip() for g in match.groups())
            raw = line[len(f"[{match.group(1)}]"):].strip()
            return self._listing(state, title, date_text, city, raw), False

        match = DATE_EVENT_NO_CITY_PATTERN.match(line)
        if match:
            date_text, state, title = (g.strip() for g in match.groups())
            if not _is_plausible_title(title):
                return None, False
            raw = line[len(f"[{match.group(1)}]"):].strip()
            return self._listing(state, title, date_text, '', raw), False

        match = STATE_EVENT_PATTERN.match(line)
        if match:
            state, title, city = (g.strip() for g in match.groups())
            date_text = current_date or extract_date(title)
            return self._listing(state, title, date_text, city, line), True

        match = STATE_EVENT_NO_CITY_PATTERN.match(line)
        if match:
            state, title = (g.strip() for g in match.groups())
            if not _is_plausible_title(title):
                return None, False
            date_text = current_date or extract_date(title)
            return self._listing(state, title, date_text, '', line), True

        return None, False

    def _listing(self, state: str, title: str, date_text: str, city: str, raw: str) -> RawListing:
        return RawListing(
            state=state,
            title=title,
            date_text=date_text,
            city=city,
            raw=raw,
            source_url=self.url,
        )
