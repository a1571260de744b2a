"""
Editor document views used by the completion pipeline.

The provider reads a document twice: once when it decides whether to ask
for a completion, and again after the response arrives to anchor the edit.
The second read must see any edits made while the request was in flight,
so documents are read through a live view rather than copied up front.

Offsets count Python string characters (code points). Positions are LSP
positions: lines end at \\n, \\r\\n or \\r, and ``character`` is measured in
the client's position encoding (UTF-16 unless negotiated otherwise). The
unit conversion goes through pygls' PositionCodec.
"""

from __future__ import annotations

import re
from typing import Any

from lsprotocol.types import Position
from pygls import uris
from pygls.workspace import PositionCodec

from .models import DocumentSnapshot

DEFAULT_POSITION_CODEC = PositionCodec()

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split text into LSP lines, keeping terminators.

    The result always ends with the (possibly empty) text after the last
    terminator, so ``n`` terminators give ``n + 1`` lines.
    """
    lines = []
    start = 0
    for match in _LINE_BREAK.finditer(text):
        lines.append(text[start : match.end()])
        start = match.end()
    lines.append(text[start:])
    return lines


def _content(line: str) -> str:
    return line.rstrip("\r\n")


def position_at(text: str, offset: int, codec: PositionCodec | None = None) -> Position:
    """Translate a character offset into a line/character position.

    Offsets outside the text are clamped to its bounds; an offset inside a
    \\r\\n pair maps to the end of that line.
    """
    codec = codec or DEFAULT_POSITION_CODEC
    offset = max(0, min(offset, len(text)))
    lines = split_lines(text)
    contents = [_content(line) for line in lines]

    line_start = 0
    for index, line in enumerate(lines[:-1]):
        if offset < line_start + len(line):
            break
        line_start += len(line)
    else:
        index = len(lines) - 1

    character = min(offset - line_start, len(contents[index]))
    return codec.position_to_client_units(contents, Position(line=index, character=character))


def offset_at(text: str, position: Position, codec: PositionCodec | None = None) -> int:
    """Translate a line/character position into a character offset.

    Lines past the end clamp to the end of the text; characters past the end
    of a line clamp to the end of that line.
    """
    codec = codec or DEFAULT_POSITION_CODEC
    lines = split_lines(text)
    if position.line >= len(lines):
        return len(text)

    line_start = sum(len(line) for line in lines[: position.line])
    contents = [_content(line) for line in lines]
    content = contents[position.line]
    if position.character <= 0:
        return line_start
    if position.character >= codec.client_num_units(content):
        return line_start + len(content)

    server_position = codec.position_from_client_units(
        contents, Position(line=position.line, character=position.character)
    )
    return line_start + min(server_position.character, len(content))


class EditorDocument:
    """Base view of an open editor document."""

    def __init__(
        self, uri: str, path: str | None = None, position_codec: PositionCodec | None = None
    ):
        self.uri = uri
        self.path = path or uris.to_fs_path(uri) or uri
        self.position_codec = position_codec or DEFAULT_POSITION_CODEC

    @property
    def text(self) -> str:
        raise NotImplementedError

    def position_at(self, offset: int) -> Position:
        return position_at(self.text, offset, self.position_codec)

    def offset_at(self, position: Position) -> int:
        return offset_at(self.text, position, self.position_codec)

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(uri=self.uri, path=self.path, text=self.text)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(uri={self.uri!r})"


class TextDocument(EditorDocument):
    """A document whose text is held directly and replaced with set_text()."""

    def __init__(
        self,
        uri: str,
        text: str = "",
        path: str | None = None,
        position_codec: PositionCodec | None = None,
    ):
        super().__init__(uri, path, position_codec)
        self._text = text

    @property
    def text(self) -> str:
        return self._text

    def set_text(self, text: str) -> None:
        self._text = text


class WorkspaceDocument(EditorDocument):
    """
    Live view over a pygls workspace document.

    pygls applies didChange events to the same document object, so reading
    ``source`` on every access always yields the current text. Positions use
    the document's own codec, which carries the negotiated encoding.
    """

    def __init__(self, document: Any):
        super().__init__(
            document.uri,
            getattr(document, "path", None),
            getattr(document, "position_codec", None),
        )
        self._document = document

    @property
    def text(self) -> str:
        return self._document.source
