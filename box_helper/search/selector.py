"""
Interactive selection of one package entry.

Two selectors share one interface: FzfSelector hands the rendered list to
fzf, NumberedSelector prints a numbered list and reads a number. Both return
the retained PackageEntry, so the displayed text is never parsed back.
"""

import abc
import io
import logging
from typing import Callable, List, Optional

from rich.console import Console
from rich.text import Text

from box_helper.core.exceptions import CommandError
from box_helper.core.interfaces import BoxConfig, PackageEntry
from box_helper.core.reporter import DETAIL_STYLE, ORIGIN_STYLES, SUCCESS_STYLE
from box_helper.core.system_dependency_checker import SystemDependencyChecker


logger = logging.getLogger(__name__)


INSTALLED_STYLE = SUCCESS_STYLE
VERSION_STYLE = DETAIL_STYLE
DESCRIPTION_STYLE = "dim"
NAME_WIDTH = 30


def render_entry(entry: PackageEntry) -> Text:
    """
    Render an entry as one display line.

    Args:
        entry: Entry to render.

    Returns:
        Styled text such as ``[aur] foo-git   1.2-1``.
    """
    text = Text.assemble(
        (f"{entry.origin.tag} {entry.name:<{NAME_WIDTH}} ", ORIGIN_STYLES[entry.origin]),
        (entry.version, INSTALLED_STYLE if entry.installed else VERSION_STYLE),
    )
    if entry.installed:
        text.append(" [installed]", INSTALLED_STYLE)
    if entry.description:
        # One entry per line; fzf input is line based
        description = " ".join(entry.description.split())
        text.append(f"  {description}", DESCRIPTION_STYLE)
    return text


def to_ansi(text: Text) -> str:
    """Convert styled text to a single line with ANSI escape codes."""
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        force_terminal=True,
        color_system="standard",
        highlight=False,
        soft_wrap=True,
    )
    console.print(text, end="")
    return buffer.getvalue()


class Selector(abc.ABC):
    """
    Base class for selectors.
    """

    @abc.abstractmethod
    def select(self, entries: List[PackageEntry], prompt: str = "Select package") -> Optional[PackageEntry]:
        """
        Let the user pick one entry.

        Args:
            entries: Entries to choose from, in display order.
            prompt: Text shown to the user.

        Returns:
            The chosen entry, or None if the user cancelled.
        """
        pass


class FzfSelector(Selector):
    """
    Selector backed by the fzf fuzzy finder.

    Each input line carries its list index in a hidden first field, so the
    line fzf returns maps straight back to the entry it was rendered from.
    """

    def __init__(
        self,
        dependency_checker: Optional[SystemDependencyChecker] = None,
        options: Optional[List[str]] = None
    ):
        self.dependency_checker = dependency_checker or SystemDependencyChecker()
        self.options = list(options) if options is not None else list(BoxConfig().fzf_options)

    def select(self, entries: List[PackageEntry], prompt: str = "Select package") -> Optional[PackageEntry]:
        if not entries:
            return None

        lines = [f"{index}\t{to_ansi(render_entry(entry))}" for index, entry in enumerate(entries)]
        command = ["fzf"] + self.options + [
            "--delimiter", "\t",
            "--with-nth", "2..",
            "--prompt", f"{prompt}> ",
        ]

        try:
            result = self.dependency_checker.execute_command(
                command, "fzf", capture_output=False, input_text="\n".join(lines) + "\n"
            )
        except CommandError as e:
            logger.warning(f"fzf selection failed: {e}")
            return None

        # fzf exits with 130 on Esc/Ctrl-C and 1 when nothing matched
        if not result.success or not result.stdout.strip():
            return None

        index_field = result.stdout.strip().split("\t", 1)[0]
        try:
            index = int(index_field)
        except ValueError:
            logger.warning(f"Unexpected fzf output: {result.stdout!r}")
            return None

        if 0 <= index < len(entries):
            return entries[index]
        return None


class NumberedSelector(Selector):
    """
    Selector that prints a numbered list and reads a number.

    ``0``, an out-of-range number or anything that is not a number cancels.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        input_func: Optional[Callable[[str], str]] = None
    ):
        self.console = console or Console(highlight=False)
        self.input_func = input_func or self.console.input

    def select(self, entries: List[PackageEntry], prompt: str = "Select package") -> Optional[PackageEntry]:
        if not entries:
            return None

        for number, entry in enumerate(entries, start=1):
            line = Text(f"{number:>6}  ")
            line.append_text(render_entry(entry))
            self.console.print(line, soft_wrap=True)

        try:
            choice = self.input_func(f"{prompt} (enter number, 0 to cancel): ")
        except EOFError:
            return None

        try:
            number = int(choice.strip())
        except ValueError:
            logger.debug(f"Non-numeric selection {choice!r}, cancelling")
            return None

        if 1 <= number <= len(entries):
            return entries[number - 1]
        return None


def create_selector(
    config: BoxConfig,
    console: Optional[Console] = None,
    dependency_checker: Optional[SystemDependencyChecker] = None
) -> Selector:
    """
    Choose the selector once, from configuration and tool availability.

    Args:
        config: Runtime configuration.
        console: Console for the numbered prompt.
        dependency_checker: Used to check whether fzf is installed.

    Returns:
        FzfSelector when fzf is enabled and installed, NumberedSelector otherwise.
    """
    dependency_checker = dependency_checker or SystemDependencyChecker()

    if config.use_fzf and dependency_checker.check_command_availability("fzf"):
        logger.debug("Using fzf for selection")
        return FzfSelector(dependency_checker, config.fzf_options)

    logger.debug("Using numbered prompt for selection")
    return NumberedSelector(console)
