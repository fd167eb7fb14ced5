"""
Command protocol -- one line in, one line out.

Inbound grammar (verbs are case-sensitive, surrounding whitespace is
ignored):

    VERB[:ARG]            colon form, ARG is a turn identifier
    VERB ARG1 [ARG2]      space form, shell-style quoting allowed

    UPLOAD:7              rename quicksave to turn_7.sav and push it
    UPLOAD <path> [dest]  push any local file
    DOWNLOAD:7            pull turn_7.sav and tell the game to load it
    DOWNLOAD <url>        fetch a URL into the save directory
    LIST_SAVES            list remote turn saves
    GET_STATUS            liveness probe

Anything else decodes to an UNKNOWN command. Decoding never fails.
"""

from __future__ import annotations

import logging
import shlex
from typing import Callable, Optional
from urllib.parse import urlsplit

from .errors import CommandParseError
from .models import Command, CommandKind, Response, ResponseKind

logger = logging.getLogger("turnrelay.protocol")

LOAD_TOKEN = "LOAD:"
URL_SCHEMES = ("http", "https", "file")


def _is_url(arg: str) -> bool:
    return urlsplit(arg).scheme in URL_SCHEMES


def _parse_upload(args: list[str], colon_form: bool) -> Command:
    if colon_form:
        if len(args) != 1:
            raise CommandParseError("UPLOAD needs a turn identifier")
        return Command.upload(args[0])
    if len(args) not in (1, 2):
        raise CommandParseError("UPLOAD needs <path> [dest]")
    return Command.upload_path(*args)


def _parse_download(args: list[str], colon_form: bool) -> Command:
    if len(args) != 1:
        raise CommandParseError("DOWNLOAD needs a turn or URL")
    if _is_url(args[0]):
        return Command.download_url(args[0])
    return Command.download(args[0])


def _parse_download_turn(args: list[str], colon_form: bool) -> Command:
    if len(args) != 1:
        raise CommandParseError("DOWNLOAD_SAVE needs a turn identifier")
    return Command.download(args[0])


def _no_args(kind: CommandKind) -> Callable[[list[str], bool], Command]:
    def parse(args: list[str], colon_form: bool) -> Command:
        if args:
            raise CommandParseError(f"{kind.value} takes no arguments")
        return Command(kind=kind)
    return parse


VERBS: dict[str, Callable[[list[str], bool], Command]] = {
    "UPLOAD": _parse_upload,
    "DOWNLOAD": _parse_download,
    "DOWNLOAD_SAVE": _parse_download_turn,
    "DOWNLOAD_DROPBOX_SAVE": _parse_download_turn,
    "LIST_SAVES": _no_args(CommandKind.LIST_SAVES),
    "LIST_DROPBOX_SAVES": _no_args(CommandKind.LIST_SAVES),
    "GET_STATUS": _no_args(CommandKind.STATUS),
    "STATUS": _no_args(CommandKind.STATUS),
}


def _split(text: str) -> tuple[str, list[str], bool]:
    """Split a command line into verb, arguments and form."""
    head = text.split(None, 1)[0]
    if ":" in head:
        verb, _, arg = text.partition(":")
        arg = arg.strip()
        return verb, [arg] if arg else [], True

    # Backslashes are literal: peers send Windows paths.
    lexer = shlex.shlex(text, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    lexer.escape = ""
    try:
        parts = list(lexer)
    except ValueError as exc:
        raise CommandParseError(f"Bad quoting: {exc}") from exc
    return parts[0], parts[1:], False


def decode_command(raw: bytes) -> Command:
    """Decode one inbound buffer into a Command.

    Invalid UTF-8 is replaced rather than rejected, and trailing NUL
    padding from C peers is dropped.

    Args:
        raw: The bytes read from the channel.

    Returns:
        The decoded command; UNKNOWN when nothing matched.
    """
    text = raw.decode("utf-8", errors="replace").replace("\x00", "").strip()
    if not text:
        return Command.unknown(text)

    try:
        verb, args, colon_form = _split(text)
        parser = VERBS.get(verb)
        if parser is None:
            raise CommandParseError(f"Unrecognized verb {verb!r}")
        return parser(args, colon_form)
    except CommandParseError as exc:
        logger.debug("Treating %r as unknown: %s", text, exc)
        return Command.unknown(text)


def encode_response(response: Response, limit: Optional[int] = None) -> bytes:
    """Encode a Response as one text line.

    LOAD responses carry a human summary followed by a ``LOAD:<path>``
    token the peer can act on.

    Args:
        response: The reply to send.
        limit: Maximum encoded size; longer replies are cut short.

    Returns:
        UTF-8 bytes, newline terminated unless truncated.
    """
    if response.kind == ResponseKind.LOAD:
        token = f"{LOAD_TOKEN}{response.path}"
        line = f"{response.text} | {token}" if response.text else token
    else:
        line = response.text

    data = f"{line}\n".encode("utf-8")
    if limit is not None and len(data) > limit:
        logger.warning(
            "Response truncated from %d to %d bytes", len(data), limit
        )
        data = data[:limit].decode("utf-8", errors="ignore").encode("utf-8")
    return data


def parse_load_instruction(text: str) -> Optional[str]:
    """Extract the path from a LOAD response, if there is one."""
    _, found, path = text.rpartition(LOAD_TOKEN)
    if not found:
        return None
    return path.strip() or None
