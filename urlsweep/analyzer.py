"""Page analyzer: title extraction and component detection.

Components come from a flat, ordered registry of independent rules. A rule
is a label-producing predicate over the fetched page; adding a detector means
appending a rule (``register_rule``), never subclassing.

Rule kinds:
 1. Response headers (Server, X-Powered-By, Via, X-AspNet-Version,
    X-AspNetMvc-Version) -> ``"<Header>: <value>"``
 2. ``<meta name="generator">`` -> ``"Meta Generator: <content>"``
 3. Body markers: case-insensitive substrings or regexes -> fixed label
    (WordPress, Drupal, Next.js, React ...)

Labels are de-duplicated case-insensitively and reported in rule order, so the
output for a given page is reproducible. The analyzer never raises for content
reasons: an empty or binary body simply yields no title and no components.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence, Union

TITLE_RE = re.compile(r'<title\b[^>]*>(.*?)</title\s*>', re.I | re.S)
TITLE_UNCLOSED_RE = re.compile(r'<title\b[^>]*>([^<]*)', re.I)
META_GENERATOR = re.compile(r'<meta[^>]+name=["\']generator["\'][^>]+content=["\']([^"\']+)["\']', re.I)
META_GENERATOR_REV = re.compile(r'<meta[^>]+content=["\']([^"\']+)["\'][^>]+name=["\']generator["\']', re.I)
CHARSET_RE = re.compile(r'charset=["\']?([\w\-]+)', re.I)

HEADER_KEYS = ('Server', 'X-Powered-By', 'Via', 'X-AspNet-Version', 'X-AspNetMvc-Version')


@dataclass(frozen=True)
class Page:
    text: str
    lower: str
    headers: Mapping[str, str]


@dataclass(frozen=True)
class Rule:
    name: str
    detect: Callable[[Page], Optional[str]]


@dataclass
class PageAnalysis:
    title: str
    components: List[str]


def header_rule(header: str) -> Rule:
    def detect(page: Page) -> Optional[str]:
        value = (page.headers.get(header) or '').strip()
        return f'{header}: {value}' if value else None
    return Rule(f'header:{header.lower()}', detect)


def meta_generator_rule() -> Rule:
    def detect(page: Page) -> Optional[str]:
        value = extract_generator(page.text)
        return f'Meta Generator: {value}' if value else None
    return Rule('meta:generator', detect)


def marker_rule(label: str, *needles: str) -> Rule:
    """Match when any lower-case ``needle`` occurs in the body."""
    def detect(page: Page) -> Optional[str]:
        for needle in needles:
            if needle in page.lower:
                return label
        return None
    return Rule(f'marker:{label.lower()}', detect)


def pattern_rule(label: str, pattern: str) -> Rule:
    compiled = re.compile(pattern, re.I)

    def detect(page: Page) -> Optional[str]:
        return label if compiled.search(page.text) else None
    return Rule(f'pattern:{label.lower()}', detect)


DEFAULT_RULES: List[Rule] = [header_rule(h) for h in HEADER_KEYS] + [
    meta_generator_rule(),
    marker_rule('WordPress', 'wp-content', 'wordpress'),
    marker_rule('Drupal', 'drupal-settings-json', 'drupal'),
    marker_rule('Joomla', 'content="joomla', 'joomla!'),
    marker_rule('Next.js', '__next', 'next.js'),
    marker_rule('Nuxt', '__nuxt', 'nuxt'),
    marker_rule('React', 'reactroot', 'data-reactroot', 'react-dom'),
    marker_rule('Vue', 'data-v-', 'vue.js', 'vue.runtime'),
    pattern_rule('Angular', r'ng-version="|angular(?:\.min)?\.js'),
    pattern_rule('jQuery', r'jquery(?:[-.]\d[\w.\-]*)?(?:\.min)?\.js'),
    pattern_rule('Bootstrap', r'bootstrap(?:\.bundle)?(?:[-.]\d[\w.\-]*)?(?:\.min)?\.(?:js|css)'),
    pattern_rule('Laravel', r'laravel_session|window\.Laravel'),
    pattern_rule('Django', r'name=["\']?csrfmiddlewaretoken'),
    pattern_rule('Shopify', r'cdn\.shopify\.com|window\.Shopify'),
    pattern_rule('Google reCAPTCHA', r'g-recaptcha|recaptcha/api\.js'),
    marker_rule('ASP.NET', '__viewstate', 'asp.net'),
    marker_rule('PHP', '.php', '<?php', 'php/'),
    marker_rule('Java', 'jsessionid', 'java servlet', 'jsp'),
]


def register_rule(rule: Rule) -> None:
    """Append a detector to the default registry.

    ``DEFAULT_RULES`` is process-wide: a registered rule applies to every
    later ``analyze`` call that does not pass its own ``rules``.
    """
    DEFAULT_RULES.append(rule)


def decode_body(body: Union[bytes, str, None], content_type: Optional[str] = None) -> str:
    if not body:
        return ''
    if isinstance(body, str):
        return body
    charset = 'utf-8'
    if content_type:
        m = CHARSET_RE.search(content_type)
        if m:
            charset = m.group(1)
    try:
        return body.decode(charset, 'ignore')
    except LookupError:
        return body.decode('utf-8', 'ignore')


def _clean(value: str) -> str:
    return ' '.join(html.unescape(value).split())


def extract_title(text: str) -> str:
    """Text of the first <title> element, entities unescaped; '' when absent."""
    if not text:
        return ''
    m = TITLE_RE.search(text) or TITLE_UNCLOSED_RE.search(text)
    return _clean(m.group(1)) if m else ''


def extract_generator(text: str) -> str:
    if not text:
        return ''
    m = META_GENERATOR.search(text) or META_GENERATOR_REV.search(text)
    return _clean(m.group(1)) if m else ''


def detect_components(page: Page, rules: Optional[Sequence[Rule]] = None) -> List[str]:
    components: List[str] = []
    seen = set()
    for rule in (DEFAULT_RULES if rules is None else rules):
        label = rule.detect(page)
        if not label:
            continue
        label = label.strip()
        key = label.lower()
        if not label or key in seen:
            continue
        seen.add(key)
        components.append(label)
    return components


def analyze(
    body: Union[bytes, str, None],
    headers: Optional[Mapping[str, str]] = None,
    rules: Optional[Sequence[Rule]] = None,
) -> PageAnalysis:
    headers = headers if headers is not None else {}
    text = decode_body(body, headers.get('Content-Type') or headers.get('content-type'))
    page = Page(text=text, lower=text.lower(), headers=headers)
    return PageAnalysis(title=extract_title(text), components=detect_components(page, rules))
