"""
Challenge page rendering.

The HTML template and the browser solver (pow.js) are loaded once at
startup; a missing file is a startup error. Per request, only the small
JavaScript API prefix changes:

    const DIFFICULTY = 4.5;
    const POW_COOKIE_NAME = "pow";
    const COOKIE_DURATION = 5;
    function getSourceValue() { return "..."; }
"""

import json
import logging
import re
from importlib import resources
from pathlib import Path
from typing import Optional

from powgate.decider import Challenge

logger = logging.getLogger(__name__)

JAVASCRIPT_PLACEHOLDER = re.compile(r"<!--\s*POW_JAVASCRIPT\s*-->")
CSS_PLACEHOLDER = re.compile(r"<!--\s*POW_CSS\s*-->")

DEFAULT_JS_FILE = "pow.js"
DEFAULT_HTML_FILE = "challenge.html"


def find_share_file(filename: str) -> Path:
    """Locate a file bundled in the package's share directory."""
    path = Path(str(resources.files("powgate") / "share" / filename))
    if not path.is_file():
        raise FileNotFoundError(
            f"Template file '{filename}' not found. Is powgate installed with its share files?"
        )
    return path


def load_template_file(path: str | Path) -> str:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Template file '{path}' not found or not readable.")
    return path.read_text(encoding="utf-8")


def js_string(value: str) -> str:
    """Quote a value as a JS string literal that cannot close a <script> element."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def js_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class ChallengePage:
    """
    Renders challenge pages from an HTML template and the solver script.

    Args:
        js_file: Path to the solver script, defaults to the bundled pow.js
        html_file: Path to the page template, defaults to the bundled one.
            Must contain ``<!-- POW_JAVASCRIPT -->``.
        css: Extra CSS injected at ``<!-- POW_CSS -->``
    """

    def __init__(
        self,
        js_file: Optional[str] = None,
        html_file: Optional[str] = None,
        css: Optional[str] = None,
    ):
        self.js_content = load_template_file(js_file or find_share_file(DEFAULT_JS_FILE))
        self.html_content = load_template_file(html_file or find_share_file(DEFAULT_HTML_FILE))
        self.css = css or ""

        if not JAVASCRIPT_PLACEHOLDER.search(self.html_content):
            raise ValueError("HTML template is missing the <!-- POW_JAVASCRIPT --> placeholder")

        logger.info("Challenge page templates loaded")

    @classmethod
    def from_settings(cls, settings) -> "ChallengePage":
        return cls(js_file=settings.js_file, html_file=settings.html_file, css=settings.css)

    def script(self, challenge: Challenge) -> str:
        """The API prefix followed by the solver script."""
        return (
            f"const DIFFICULTY = {js_number(challenge.difficulty)};\n"
            f"const POW_COOKIE_NAME = {js_string(challenge.cookie_name)};\n"
            f"const COOKIE_DURATION = {js_number(challenge.cookie_duration)};\n"
            f"function getSourceValue() {{\n"
            f"  return {js_string(challenge.source_value)};\n"
            f"}}\n"
            f"{self.js_content}"
        )

    def render(self, challenge: Challenge) -> str:
        script = self.script(challenge)
        # Callables so backslashes in the script are not read as group references
        html = JAVASCRIPT_PLACEHOLDER.sub(lambda _: script, self.html_content, count=1)
        return CSS_PLACEHOLDER.sub(lambda _: self.css, html, count=1)
