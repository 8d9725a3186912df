"""
formats.py - Output templates for DNS blockers

    plain    example.com
    unbound  local-zone: "example.com" always_refuse
    rpz      example.com CNAME .
             *.example.com CNAME .

Only rpz emits a wildcard, so only rpz output is reduced (see OutputFormat.reduce).
"""

from __future__ import annotations

from typing import Callable, Final, Iterable, NamedTuple

from blocksieve.errors import InvalidFormatError


class OutputFormat(NamedTuple):
    """
    An output style.

    Attributes:
        name: Name used on the command line
        render: Function turning one domain into its output lines
        reduce: True if covered subdomains are pruned before rendering
    """
    name: str
    render: Callable[[str], list[str]]
    reduce: bool


def render_plain(domain: str) -> list[str]:
    return [domain]


def render_unbound(domain: str) -> list[str]:
    return [f'local-zone: "{domain}" always_refuse']


def render_rpz(domain: str) -> list[str]:
    return [f"{domain} CNAME .", f"*.{domain} CNAME ."]


FORMATS: Final[dict[str, OutputFormat]] = {
    "plain": OutputFormat("plain", render_plain, reduce=False),
    "unbound": OutputFormat("unbound", render_unbound, reduce=False),
    "rpz": OutputFormat("rpz", render_rpz, reduce=True),
}

DEFAULT_FORMAT: Final[str] = "plain"


def get_format(name: str) -> OutputFormat:
    """
    Look up an output format by name.

    Raises:
        InvalidFormatError: if the name is unknown
    """
    try:
        return FORMATS[name]
    except KeyError:
        raise InvalidFormatError(name, tuple(FORMATS)) from None


def format_domains(domains: Iterable[str], fmt: OutputFormat) -> list[str]:
    """Render domains in byte order, the output is always sorted."""
    lines: list[str] = []
    for domain in sorted(domains):
        lines.extend(fmt.render(domain))
    return lines
