"""
Script Parser
=============

Scans JavaScript web resources for external HTTP calls, platform API usage
and front-end framework fingerprints.

Detection Passes (in order, first match for a URL wins):
1. fetch(url, {method})              - High confidence
2. xhr.open(method, url)             - High confidence
3. axios.<verb>(url)                 - High confidence
4. $.ajax({url, type|method})        - Medium confidence
5. Any http(s) URL in a string       - Low confidence

URLs pointing back at the platform itself are discarded.
"""

import re

from ..model.schemas import ScriptAnalysis, ExternalCall, Confidence, Complexity
from .common import extract_domain


INTERNAL_URL_PATTERNS = [
    "/api/data/",
    "dynamics.com",
    "crm.dynamics.com",
    "Xrm.WebApi",
]

MODERN_API_MARKERS = ["Xrm.WebApi", "Xrm.Navigation", "Xrm.Utility"]
DEPRECATED_API_MARKER = "Xrm.Page"

FRAMEWORK_FINGERPRINTS = [
    ("jQuery", ["jQuery", "$.ajax", "$("]),
    ("React", ["React", "ReactDOM"]),
    ("Angular", ["angular", "ng-"]),
    ("Vue", ["Vue", "vue"]),
]

_FETCH_PATTERN = re.compile(
    r"""fetch\s*\(\s*['"`]([^'"`]+)['"`](?:\s*,\s*\{[^}]*method\s*:\s*['"`]([^'"`]+)['"`])?""",
    re.IGNORECASE
)
_XHR_PATTERN = re.compile(
    r"""\.open\s*\(\s*['"`]([^'"`]+)['"`]\s*,\s*['"`]([^'"`]+)['"`]""",
    re.IGNORECASE
)
_AXIOS_PATTERN = re.compile(
    r"""axios\s*\.\s*(get|post|put|delete|patch)\s*\(\s*['"`]([^'"`]+)['"`]""",
    re.IGNORECASE
)
_JQUERY_PATTERN = re.compile(
    r"""\$\.ajax\s*\(\s*\{[^}]*url\s*:\s*['"`]([^'"`]+)['"`][^}]*(?:method|type)\s*:\s*['"`]([^'"`]+)['"`]""",
    re.IGNORECASE
)
_URL_PATTERN = re.compile(
    r"""https?://[a-zA-Z0-9\-._~:/?#\[\]@!$&()*+,;=%]+""",
    re.IGNORECASE
)


class ScriptParser:
    """Parser for JavaScript web resource content.

    Usage:
        analysis = ScriptParser.parse(content, "new_/scripts/account.js")
        for call in analysis.external_calls:
            print(call.domain, call.confidence.value)
    """

    @classmethod
    def parse(cls, content: str, resource_name: str = "") -> ScriptAnalysis:
        """Parse decoded script text.

        Args:
            content: Script source
            resource_name: Name of the web resource (for context only)

        Returns:
            ScriptAnalysis; an empty analysis for empty input
        """
        if not content or not isinstance(content, str):
            return ScriptAnalysis()

        lines_of_code = cls.count_lines_of_code(content)
        external_calls = cls.detect_external_calls(content)
        frameworks = cls.detect_frameworks(content)

        return ScriptAnalysis(
            external_calls=external_calls,
            uses_xrm=any(marker in content for marker in MODERN_API_MARKERS),
            uses_deprecated_xrm_page=DEPRECATED_API_MARKER in content,
            frameworks=frameworks,
            lines_of_code=lines_of_code,
            complexity=cls.determine_complexity(lines_of_code, len(external_calls), len(frameworks)),
        )

    @staticmethod
    def count_lines_of_code(content: str) -> int:
        """Count non-empty lines that do not start with a comment marker."""
        count = 0
        for line in content.split("\n"):
            stripped = line.strip()
            if stripped and not stripped.startswith(("//", "/*", "*")):
                count += 1
        return count

    @classmethod
    def detect_external_calls(cls, content: str) -> list[ExternalCall]:
        """Run the five detection passes, de-duplicating by literal URL."""
        calls: list[ExternalCall] = []
        seen_urls: set[str] = set()

        def record(url: str, method, action_name: str, confidence: Confidence) -> None:
            if url in seen_urls or not cls.is_external_url(url):
                return
            seen_urls.add(url)
            calls.append(ExternalCall(
                url=url,
                domain=extract_domain(url),
                method=method,
                action_name=action_name,
                confidence=confidence,
            ))

        for match in _FETCH_PATTERN.finditer(content):
            record(match.group(1), match.group(2) or "GET", "fetch", Confidence.HIGH)

        for match in _XHR_PATTERN.finditer(content):
            record(match.group(2), match.group(1), "XMLHttpRequest", Confidence.HIGH)

        for match in _AXIOS_PATTERN.finditer(content):
            record(match.group(2), match.group(1).upper(), "axios", Confidence.HIGH)

        for match in _JQUERY_PATTERN.finditer(content):
            record(match.group(1), match.group(2), "$.ajax", Confidence.MEDIUM)

        for match in _URL_PATTERN.finditer(content):
            # Trailing punctuation belongs to the surrounding code, not the URL
            record(match.group(0).rstrip(".,;:)"), None, "URL in string", Confidence.LOW)

        return calls

    @staticmethod
    def is_external_url(url: str) -> bool:
        """True for absolute http(s) URLs that do not point at the platform."""
        if any(pattern in url for pattern in INTERNAL_URL_PATTERNS):
            return False
        return url.startswith("http://") or url.startswith("https://")

    @staticmethod
    def detect_frameworks(content: str) -> list[str]:
        return [
            name for name, markers in FRAMEWORK_FINGERPRINTS
            if any(marker in content for marker in markers)
        ]

    @staticmethod
    def determine_complexity(lines_of_code: int, external_calls: int, frameworks: int) -> Complexity:
        """Weighted score over size, external calls and frameworks.

        lines >500: +2, >200: +1; calls >3: +2, >0: +1; frameworks >1: +1.
        Score >=4 is High, >=2 Medium, otherwise Low.
        """
        score = 0

        if lines_of_code > 500:
            score += 2
        elif lines_of_code > 200:
            score += 1

        if external_calls > 3:
            score += 2
        elif external_calls > 0:
            score += 1

        if frameworks > 1:
            score += 1

        if score >= 4:
            return Complexity.HIGH
        if score >= 2:
            return Complexity.MEDIUM
        return Complexity.LOW


def parse_script(content: str, resource_name: str = "") -> ScriptAnalysis:
    """Convenience wrapper around ScriptParser.parse()."""
    return ScriptParser.parse(content, resource_name)
