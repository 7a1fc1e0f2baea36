"""Message source extraction and generated output file handling."""

from __future__ import annotations

import os
import pathlib
import tempfile
from typing import Iterable, List, Sequence

from .dialect import CALL_START, OUTPUT_FUNCTION, OUTPUT_INCLUDE
from .errors import MistranslateError
from .structures import MessageBlock


def extract_message_blocks(text: str, call_start: str = CALL_START) -> List[MessageBlock]:
    """Return every top-level ``DEFINE_MESSAGE(...)`` span in source order.

    Parentheses are counted from the call-start token until the depth returns
    to zero. Quotes are not tracked, so a parenthesis inside a string literal
    still moves the depth. An unbalanced final block runs to the end of input.
    """

    blocks: List[MessageBlock] = []
    index = 0
    length = len(text)

    while index < length:
        start = text.find(call_start, index)
        if start == -1:
            break

        depth = 0
        end = start
        started = False
        while end < length:
            char = text[end]
            if char == "(":
                depth += 1
                started = True
            elif char == ")":
                depth -= 1
                if depth == 0 and started:
                    end += 1
                    break
            end += 1

        blocks.append(MessageBlock(text=text[start:end], start=start))
        index = end

    return blocks


def render_output(lines: Sequence[str]) -> str:
    """Wrap encoded calls into the generated source file."""

    body = "\n".join(
        "    " + line.replace("\n", "\n    ") for line in lines
    )
    return f"{OUTPUT_INCLUDE}\n\n{OUTPUT_FUNCTION} {{\n{body}\n}}\n"


def atomic_write(data: str, output: pathlib.Path) -> None:
    """Write text next to its destination first, then swap it into place."""

    output.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(output.parent), prefix=f".{output.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(data)
        os.replace(tmp_name, output)
    except BaseException:
        pathlib.Path(tmp_name).unlink(missing_ok=True)
        raise


class MessageSourceDocument:
    """A message data header file and the blocks found inside it."""

    def __init__(self, source_path: pathlib.Path):
        self.source_path = source_path
        self.blocks: List[MessageBlock] = []
        try:
            self.text = source_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            self.text = source_path.read_text(encoding="latin-1")
        except OSError as exc:
            raise MistranslateError(
                f"Could not read message source {source_path}: {exc}"
            ) from exc

    def extract_blocks(self) -> List[MessageBlock]:
        self.blocks = extract_message_blocks(self.text)
        return self.blocks

    def save(self, destination: pathlib.Path, lines: Iterable[str]) -> None:
        """Persist the encoded calls as a compilable source file."""

        atomic_write(render_output(list(lines)), destination)
