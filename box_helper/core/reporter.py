"""
User-facing status output.

Every outcome box reports (progress, success, failure) is printed here as
colored text on the rich console.
"""

from typing import Optional

from rich.console import Console
from rich.text import Text

from box_helper.core.interfaces import PackageOrigin


ORIGIN_STYLES = {
    PackageOrigin.OFFICIAL: "bold yellow",
    PackageOrigin.COMMUNITY: "bold magenta",
}
SUCCESS_STYLE = "bold green"
ERROR_STYLE = "bold red"
DETAIL_STYLE = "cyan"


class Reporter:
    """Prints colored status lines."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False)

    def step(self, message: str, detail: Optional[str] = None,
             origin: PackageOrigin = PackageOrigin.OFFICIAL) -> None:
        """Announce a step, e.g. "Adding AUR package: foo"."""
        text = Text(message, ORIGIN_STYLES[origin])
        if detail:
            text.append(detail, DETAIL_STYLE)
        self.console.print(text)

    def detail(self, message: str) -> None:
        self.console.print(Text(message, DETAIL_STYLE))

    def success(self, message: str) -> None:
        self.console.print(Text(message, SUCCESS_STYLE))

    def error(self, message: str) -> None:
        self.console.print(Text(message, ERROR_STYLE))
