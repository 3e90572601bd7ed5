"""Selectors, patterns and in-page scripts used to locate a quote on a page.

Everything here is configuration for the extraction strategies; the
strategies themselves live in extractor.py.
"""

import re

# Structural selectors that often hold the last traded price, most specific first
PRICE_SELECTORS: tuple[str, ...] = (
    '[data-field="last_price"]',
    ".tv-symbol-price-quote__value",
    ".js-symbol-last",
    '[class*="price"]:not([class*="change"])',
    '[class*="Price"]:not([class*="Change"])',
    '.tradingview-widget-container [class*="price"]',
)

CURRENCY_GLYPHS = "$€£¥₹"

# Plausible range (exclusive on both ends)
MIN_PLAUSIBLE_PRICE = 0.001
MAX_PLAUSIBLE_PRICE = 1_000_000.0

# Fallback when the computed font size is missing or unparseable
DEFAULT_FONT_SIZE = 12.0

# Longest element text considered by the salience scan. A bare quote such as
# "$123,456.12345678" fits comfortably; anything longer is a container.
MAX_CANDIDATE_TEXT_LENGTH = 32

# Whole-element text that looks like a bare price, optional leading "$"
SALIENT_PRICE_RE = re.compile(r"^\$?(\d{1,6}(?:,\d{3})*(?:\.\d{2,8})?)$")

# Any price-shaped substring in running text
TEXT_PRICE_RE = re.compile(r"\b(\d{1,6}(?:,\d{3})*(?:\.\d{2,8})?)\b")

# --- Scripts evaluated inside the page ---

# Returns {text, fontSize, width, height} for every rendered element with short text
VISIBLE_CANDIDATES_SCRIPT = """
(maxLength) => {
  const out = [];
  for (const el of document.querySelectorAll('*')) {
    const rect = el.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) continue;
    const text = (el.textContent || '').trim();
    if (!text || text.length > maxLength) continue;
    out.push({
      text,
      fontSize: parseFloat(window.getComputedStyle(el).fontSize) || 0,
      width: rect.width,
      height: rect.height,
    });
  }
  return out;
}
"""

# Readiness check: true once the body holds anything price-shaped
PRICE_CONTENT_SCRIPT = """
() => {
  const text = document.body ? document.body.textContent || '' : '';
  return /\\d{1,6}(?:,\\d{3})*\\.\\d{2,8}/.test(text) || /\\d{1,6}(?:,\\d{3})*/.test(text);
}
"""

BODY_TEXT_SCRIPT = "() => document.body ? document.body.textContent || '' : ''"

SET_TITLE_SCRIPT = "(title) => { document.title = title; }"
