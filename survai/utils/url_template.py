"""URL template rendering for offer destination and pixel URLs.

Templates carry ``{token_name}`` placeholders. Values are
percent-encoded before insertion unless the caller marks them as
already-valid URL fragments. Tokens without a supplied value are left
in place literally so a partially resolved URL is still produced.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import quote, urlsplit, urlunsplit

from survai.core.errors import TemplatingError

CLICK_ID_TOKEN = "click_id"
SURVEY_ID_TOKEN = "survey_id"
SESSION_ID_TOKEN = "session_id"

TOKEN_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class TemplateValue:
    """A substitution value with its escape flag."""

    value: str
    escape: bool = True

    def encoded(self) -> str:
        return quote(self.value, safe="") if self.escape else self.value


TemplateValues = Mapping[str, "str | TemplateValue"]


def _as_template_value(value: "str | TemplateValue") -> TemplateValue:
    if isinstance(value, TemplateValue):
        return value
    return TemplateValue(str(value))


def template_tokens(template: str) -> set[str]:
    """Return the names of all placeholder tokens in a template."""
    return set(TOKEN_PATTERN.findall(template))


def validate_template(template: str) -> None:
    """Raise TemplatingError if the template has stray or unbalanced braces."""
    remainder = TOKEN_PATTERN.sub("", template)
    if "{" in remainder or "}" in remainder:
        raise TemplatingError(f"Malformed URL template: {template!r}")


def render_url_template(template: str, values: TemplateValues) -> str:
    """Substitute tokens into a URL template.

    Args:
        template: Template such as ``https://x.com/go?click_id={click_id}``
        values: Token name to plain string (escaped) or TemplateValue

    Returns:
        The rendered URL. Unknown tokens are kept literally.

    Raises:
        TemplatingError: If the template syntax is malformed.
    """
    validate_template(template)
    resolved = {name: _as_template_value(v) for name, v in values.items()}

    def _replace(match: re.Match) -> str:
        token = resolved.get(match.group(1))
        if token is None:
            return match.group(0)
        return token.encoded()

    return TOKEN_PATTERN.sub(_replace, template)


def render_url_template_lenient(template: str, values: TemplateValues) -> str:
    """Best-effort literal substitution that never raises.

    Used when a template fails validation: every exact ``{name}``
    occurrence with a supplied value is replaced, everything else is
    left untouched.
    """
    url = template
    for name, value in values.items():
        url = url.replace("{" + name + "}", _as_template_value(value).encoded())
    return url


def append_query_param(url: str, name: str, value: str) -> str:
    """Append ``name=value`` to the query string, keeping any fragment."""
    pair = f"{quote(name, safe='')}={quote(value, safe='')}"
    try:
        parts = urlsplit(url)
    except ValueError:
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{pair}"
    query = f"{parts.query}&{pair}" if parts.query else pair
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
