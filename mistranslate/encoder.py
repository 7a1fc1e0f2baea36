"""Reassembly of translated text and encoding into EZTR replace calls.

Chunks are turned into a flat stream of :class:`Literal` and :class:`Macro`
tokens by two small cursor scanners, one for macro text found between quoted
literals and one for reassembled quoted text. Wrapping and cleanup rules then
run on the token stream rather than on the rendered string, and each rule is
idempotent on its own output.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .defines import split_top_level
from .dialect import (
    ARGW_MACROS,
    ARGW_SUFFIX,
    BOX_BREAK,
    BOX_BREAK_DELAYED,
    BOX_BREAKS,
    CALL_NAME,
    END,
    LINE_LENGTH,
    LINES_PER_BOX,
    NEWLINE,
    NOWRAP_MACROS,
    PLAIN_BOX_BREAKS,
    is_break,
    is_macro_name,
    with_prefix,
)
from .display import sanitize_for_display, wrap_lines
from .structures import (
    Chunk,
    ContentToken,
    ControlToken,
    DefineData,
    Literal,
    Macro,
    MacroChunk,
    MessageLayout,
    TextChunk,
    TextRun,
    TextSegment,
)

LINE_JOIN = f'" {NEWLINE} "'


def quotable(boundary: str) -> str:
    """Drop a dangling quote or backslash so the text can sit inside ``"..."``."""

    if boundary.endswith('"') or boundary.endswith("\\"):
        return boundary[:-1]
    return boundary


def skip_line(message_id: str, reason: str | None = None) -> str:
    line = f"// Skipped {message_id}"
    if reason:
        line += f" ({reason})"
    return " ".join(line.splitlines())


def is_unsplittable(layout: MessageLayout) -> bool:
    """Messages with choice menus or input prompts must keep their lines intact."""

    macro_text = [layout.leading_macros, *layout.inter_macros, layout.trailing_macros]
    return any(name in text for text in macro_text for name in NOWRAP_MACROS)


def _render_run(text: str, *, wrap: bool) -> str:
    if wrap:
        return LINE_JOIN.join(wrap_lines(text))
    return text[:LINE_LENGTH]


def _render_segment(
    segment: TextSegment,
    fragments: Sequence[str],
    index: int,
    *,
    wrap: bool,
) -> Tuple[str, int]:
    """Render one segment as quoted text; return it and the next fragment index."""

    parts = segment.parts
    ignored_start = quotable(segment.ignored_start)
    ignored_end = quotable(segment.ignored_end)

    pieces: List[str] = []
    if ignored_start and not (parts and isinstance(parts[0], TextRun)):
        pieces.append(f'"{ignored_start}"')

    for position, part in enumerate(parts):
        fragment = fragments[index] if index < len(fragments) else ""
        index += 1

        previous = parts[position - 1] if position > 0 else None
        following = parts[position + 1] if position + 1 < len(parts) else None

        if isinstance(part, ControlToken):
            # Glue with no neighbouring run to absorb it keeps its own literal.
            left = quotable(part.left_glue)
            right = quotable(part.right_glue)
            if left and not isinstance(previous, TextRun):
                pieces.append(f'"{left}"')
            pieces.append(part.name)
            if right and not isinstance(following, TextRun):
                pieces.append(f'"{right}"')
            continue

        text = sanitize_for_display(fragment)
        part.text = text
        rendered = _render_run(text, wrap=wrap)
        if isinstance(previous, ControlToken):
            rendered = quotable(previous.right_glue) + rendered
        if isinstance(following, ControlToken):
            rendered += quotable(following.left_glue)
        if position == 0:
            rendered = ignored_start + rendered
        pieces.append(f'"{rendered}"')

    text = " ".join(pieces)
    if ignored_end:
        if text.endswith('"'):
            text = text[:-1] + ignored_end + '"'
        else:
            text = f'{text} "{ignored_end}"'.lstrip()
    return text, index


def reassemble(
    layout: MessageLayout,
    fragments: Sequence[str],
    *,
    wrap: bool = True,
) -> List[Chunk]:
    """Substitute translated fragments back into the message structure.

    ``fragments`` holds one entry per part, in the order produced by
    :meth:`MessageLayout.fragments`. Entries standing in for control tokens are
    skipped and the token itself is emitted.
    """

    chunks: List[Chunk] = []
    if layout.leading_macros.strip():
        chunks.append(MacroChunk(layout.leading_macros))

    index = 0
    for position, segment in enumerate(layout.segments):
        text, index = _render_segment(segment, fragments, index, wrap=wrap)
        chunks.append(
            TextChunk(
                parts=segment.parts,
                text=text,
                ignored_start=segment.ignored_start,
                ignored_end=segment.ignored_end,
            )
        )

        if position < len(layout.inter_macros):
            macro = layout.inter_macros[position]
            if macro.strip():
                chunks.append(MacroChunk(macro))

    if layout.trailing_macros.strip():
        chunks.append(MacroChunk(layout.trailing_macros))

    return chunks


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _closing_paren(text: str, opening: int) -> int:
    depth = 0
    for index in range(opening, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return len(text)


def _macro_name(name: str) -> str:
    return with_prefix(name) if is_macro_name(name) else name


def tokenize_macros(text: str, hoisted: List[str]) -> List[ContentToken]:
    """Scan raw macro text into prefixed macro tokens.

    Argument-taking macros listed in ``ARGW_MACROS`` become their ``_ARGW``
    form and their single argument is appended to ``hoisted``.
    """

    tokens: List[ContentToken] = []
    index = 0
    length = len(text)

    while index < length:
        if not _is_word_char(text[index]):
            index += 1
            continue

        start = index
        while index < length and _is_word_char(text[index]):
            index += 1
        name = text[start:index]

        lookahead = index
        while lookahead < length and text[lookahead].isspace():
            lookahead += 1

        if lookahead < length and text[lookahead] == "(":
            closing = _closing_paren(text, lookahead)
            argument = text[lookahead + 1:closing].strip()
            index = closing + 1
            if name in ARGW_MACROS and argument and len(split_top_level(argument)) == 1:
                hoisted.append(argument)
                tokens.append(Macro(with_prefix(name + ARGW_SUFFIX)))
            else:
                tokens.append(Macro(f"{_macro_name(name)}({argument})"))
            continue

        tokens.append(Macro(_macro_name(name)))

    return tokens


def tokenize_text(text: str) -> List[ContentToken]:
    """Scan reassembled quoted text into literals and macro tokens.

    Inside a quote, ``\\n`` and raw newlines close the current literal and emit
    a line break. Other escapes are kept verbatim. Outside quotes, bare
    all-caps names gain the target prefix; anything else is skipped.
    """

    tokens: List[ContentToken] = []
    index = 0
    length = len(text)

    while index < length:
        char = text[index]

        if char == '"':
            index += 1
            buffer: List[str] = []
            while index < length and text[index] != '"':
                current = text[index]
                if current == "\\" and index + 1 < length:
                    escape = text[index:index + 2]
                    if escape == "\\n":
                        tokens.append(Literal("".join(buffer)))
                        tokens.append(Macro(NEWLINE))
                        buffer = []
                    else:
                        buffer.append(escape)
                    index += 2
                    continue
                if current == "\n":
                    tokens.append(Literal("".join(buffer)))
                    tokens.append(Macro(NEWLINE))
                    buffer = []
                else:
                    buffer.append(current)
                index += 1
            tokens.append(Literal("".join(buffer)))
            index += 1
            continue

        if _is_word_char(char):
            start = index
            while index < length and _is_word_char(text[index]):
                index += 1
            tokens.append(Macro(_macro_name(text[start:index])))
            continue

        index += 1

    return tokens


def _is_break_token(token: ContentToken) -> bool:
    return isinstance(token, Macro) and is_break(token.name)


def fill_lines(
    tokens: Sequence[ContentToken], line_length: int = LINE_LENGTH
) -> List[ContentToken]:
    """Break before a literal that would overflow the line it joins."""

    filled: List[ContentToken] = []
    used = 0
    for token in tokens:
        if isinstance(token, Macro):
            if is_break(token.name):
                used = 0
            filled.append(token)
            continue

        if used and used + len(token.text) > line_length + 1:
            filled.append(Macro(NEWLINE))
            used = 0
        filled.append(token)
        used += len(token.text)
    return filled


def _merge_breaks(first: str, second: str) -> Optional[str]:
    if first == NEWLINE:
        return second
    if second == NEWLINE:
        return first
    if first == second and first in PLAIN_BOX_BREAKS:
        return first
    # A delayed break carries a hoisted argument and is never dropped.
    if first in PLAIN_BOX_BREAKS and second == BOX_BREAK_DELAYED:
        return second
    if first == BOX_BREAK_DELAYED and second in PLAIN_BOX_BREAKS:
        return first
    return None


def collapse_breaks(tokens: Sequence[ContentToken]) -> List[ContentToken]:
    """Drop empty literals and fold neighbouring break markers into one."""

    collapsed: List[ContentToken] = []
    for token in tokens:
        if isinstance(token, Literal) and not token.text:
            continue

        if not _is_break_token(token):
            collapsed.append(token)
            continue

        current = token.name
        while collapsed:
            last = collapsed[-1]
            if _is_break_token(last):
                merged = _merge_breaks(last.name, current)
                if merged is None:
                    break
                collapsed.pop()
                current = merged
                continue
            # Whitespace between two breaks goes only when the breaks merge.
            if (
                isinstance(last, Literal)
                and last.text.isspace()
                and len(collapsed) >= 2
                and _is_break_token(collapsed[-2])
            ):
                merged = _merge_breaks(collapsed[-2].name, current)
                if merged is not None:
                    del collapsed[-2:]
                    current = merged
                    continue
            break
        collapsed.append(Macro(current))

    return collapsed


def strip_leading_newline(tokens: Sequence[ContentToken]) -> List[ContentToken]:
    if tokens and tokens[0] == Macro(NEWLINE):
        return list(tokens[1:])
    return list(tokens)


def promote_box_breaks(
    tokens: Sequence[ContentToken], lines_per_box: int = LINES_PER_BOX
) -> List[ContentToken]:
    """Turn every ``lines_per_box``-th chained line break into a box break."""

    promoted: List[ContentToken] = []
    chained = 0
    for token in tokens:
        if isinstance(token, Macro):
            if token.name in BOX_BREAKS:
                chained = 0
            elif token.name == NEWLINE:
                chained += 1
                if chained >= lines_per_box:
                    chained = 0
                    token = Macro(BOX_BREAK)
        promoted.append(token)
    return promoted


def finalize_content(
    tokens: Sequence[ContentToken], *, wrap: bool = True
) -> List[ContentToken]:
    """Apply line filling and cleanup; running it twice changes nothing."""

    content = [token for token in tokens if not (isinstance(token, Literal) and not token.text)]
    if wrap:
        content = fill_lines(content)
    content = strip_leading_newline(collapse_breaks(content))
    if wrap:
        content = promote_box_breaks(content)
    return content


def render_content(tokens: Sequence[ContentToken]) -> str:
    return " ".join(token.render() for token in tokens)


def encode_message(
    define: DefineData,
    chunks: Sequence[Chunk],
    *,
    wrap: bool = True,
) -> str:
    """Emit the single ``EZTR_Basic_ReplaceText(...)`` call for a message."""

    hoisted: List[str] = []
    tokens: List[ContentToken] = []
    for chunk in chunks:
        if isinstance(chunk, MacroChunk):
            tokens.extend(tokenize_macros(chunk.text, hoisted))
        else:
            tokens.extend(tokenize_text(chunk.text))

    content = render_content(finalize_content(tokens, wrap=wrap)) or '""'

    arguments = [
        define.message_id,
        define.box_type,
        define.y_pos,
        define.icon,
        define.next_message_id,
        define.first_item_cost,
        define.second_item_cost,
        "false",
        f"{content} {END}",
        "NULL",
        *hoisted,
    ]
    return f"{CALL_NAME}({','.join(arguments)});"


def encode_layout(layout: MessageLayout, fragments: Sequence[str]) -> str:
    """Reassemble and encode a segmented message in one step."""

    wrap = not is_unsplittable(layout)
    chunks = reassemble(layout, fragments, wrap=wrap)
    return encode_message(layout.define, chunks, wrap=wrap)
