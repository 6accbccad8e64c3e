#!/usr/bin/env python3.11
"""
Print jobs: formatted receipt lines paired with the style each is printed in.
"""
import enum
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from print_bridge.driver import PrinterCommand

SEPARATOR_RUN = "=" * 10
DEFAULT_FOOTER_MARKERS = ("Thank you", "Please come")
EMPHASIZED_PREFIXES = ("TOTAL:", "Subtotal:")


class LineStyle(enum.Enum):
    NORMAL = "normal"
    CENTER = "center"
    BOLD = "bold"
    # Centered, double size; used for the test page heading
    TITLE = "title"


@dataclass(frozen=True)
class PrintLine:
    text: str
    style: LineStyle = LineStyle.NORMAL


@dataclass(frozen=True)
class PrintJob:
    lines: Tuple[PrintLine, ...]

    def __len__(self) -> int:
        return len(self.lines)

    def as_text(self) -> str:
        return "\n".join(line.text for line in self.lines)


def classify_line(line: str, store_name: str = "", footer_markers: Sequence[str] = DEFAULT_FOOTER_MARKERS) -> LineStyle:
    """
    Pick the print style of a receipt line from its shape.

    Separator lines, footer lines and the store name are centered; totals are
    printed bold; everything else is left aligned.
    """
    if SEPARATOR_RUN in line:
        return LineStyle.CENTER
    if any(marker and marker in line for marker in footer_markers):
        return LineStyle.CENTER
    if store_name and store_name.upper() in line.upper():
        return LineStyle.CENTER
    if line.startswith(EMPHASIZED_PREFIXES):
        return LineStyle.BOLD
    return LineStyle.NORMAL


def build_print_job(lines: Iterable[str], store_name: str = "",
                    footer_markers: Sequence[str] = DEFAULT_FOOTER_MARKERS) -> PrintJob:
    """Classify every formatted line and freeze the result into a PrintJob."""
    return PrintJob(tuple(
        PrintLine(line, classify_line(line, store_name, footer_markers)) for line in lines
    ))


def job_to_commands(job: PrintJob) -> List[PrinterCommand]:
    """Translate a job into the printer command stream, ending with a feed and a cut."""
    commands = []
    for line in job.lines:
        if line.style is LineStyle.CENTER:
            commands += [PrinterCommand.align("center"), PrinterCommand.text(line.text)]
        elif line.style is LineStyle.BOLD:
            commands += [
                PrinterCommand.align("left"),
                PrinterCommand.bold(True),
                PrinterCommand.text(line.text),
                PrinterCommand.bold(False),
            ]
        elif line.style is LineStyle.TITLE:
            commands += [
                PrinterCommand.align("center"),
                PrinterCommand.size(2, 2),
                PrinterCommand.text(line.text),
                PrinterCommand.size(1, 1),
            ]
        else:
            commands += [PrinterCommand.align("left"), PrinterCommand.text(line.text)]

    commands += [PrinterCommand.feed(2), PrinterCommand.cut()]
    return commands
