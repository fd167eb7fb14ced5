"""Tests for the command protocol: decoding commands, encoding replies."""

from __future__ import annotations

import pytest

from turnrelay.models import Command, CommandKind, Response
from turnrelay.protocol import (
    decode_command,
    encode_response,
    parse_load_instruction,
)


class TestDecodeColonForm:
    """VERB:ARG commands carry a turn identifier."""

    def test_upload_turn(self):
        cmd = decode_command(b"UPLOAD:7")
        assert cmd.kind == CommandKind.UPLOAD
        assert cmd.turn == "7"

    def test_surrounding_whitespace_ignored(self):
        cmd = decode_command(b"  UPLOAD:7 \r\n")
        assert cmd == Command.upload("7")

    def test_non_numeric_turn_kept_verbatim(self):
        assert decode_command(b"UPLOAD:final-round").turn == "final-round"

    def test_download_turn(self):
        cmd = decode_command(b"DOWNLOAD:12")
        assert cmd.kind == CommandKind.DOWNLOAD
        assert cmd.turn == "12"

    def test_dropbox_download_alias(self):
        assert decode_command(b"DOWNLOAD_DROPBOX_SAVE:4") == Command.download("4")

    def test_download_colon_url(self):
        cmd = decode_command(b"DOWNLOAD:https://example.com/turn_3.sav")
        assert cmd.kind == CommandKind.DOWNLOAD_URL

    def test_empty_argument_is_unknown(self):
        cmd = decode_command(b"UPLOAD:")
        assert cmd.kind == CommandKind.UNKNOWN
        assert cmd.raw == "UPLOAD:"

    def test_list_with_trailing_colon(self):
        assert decode_command(b"LIST_SAVES:").kind == CommandKind.LIST_SAVES


class TestDecodeSpaceForm:
    """VERB ARG1 [ARG2] commands are the generic transfers."""

    def test_upload_path(self):
        cmd = decode_command(b"UPLOAD /tmp/a.sav")
        assert cmd.kind == CommandKind.UPLOAD_PATH
        assert cmd.local_path == "/tmp/a.sav"
        assert cmd.remote_path is None

    def test_upload_path_with_destination(self):
        cmd = decode_command(b"UPLOAD /tmp/a.sav /backup/a.sav")
        assert cmd.remote_path == "/backup/a.sav"

    def test_quoted_path_with_spaces(self):
        cmd = decode_command(b'UPLOAD "/tmp/my save.sav"')
        assert cmd.local_path == "/tmp/my save.sav"

    def test_windows_path_keeps_backslashes(self):
        cmd = decode_command(rb"UPLOAD C:\Games\Saves\mine.sav")
        assert cmd.kind == CommandKind.UPLOAD_PATH
        assert cmd.local_path == r"C:\Games\Saves\mine.sav"

    def test_quoted_windows_path(self):
        cmd = decode_command(rb'UPLOAD "C:\My Games\turn 4.sav" /backup/turn_4.sav')
        assert cmd.local_path == r"C:\My Games\turn 4.sav"
        assert cmd.remote_path == "/backup/turn_4.sav"

    def test_download_url(self):
        cmd = decode_command(b"DOWNLOAD https://example.com/saves/turn_3.sav")
        assert cmd.kind == CommandKind.DOWNLOAD_URL
        assert cmd.url == "https://example.com/saves/turn_3.sav"

    def test_download_plain_turn(self):
        assert decode_command(b"DOWNLOAD 9") == Command.download("9")

    def test_too_many_arguments(self):
        assert decode_command(b"UPLOAD a b c").kind == CommandKind.UNKNOWN

    def test_unbalanced_quote(self):
        assert decode_command(b'UPLOAD "oops').kind == CommandKind.UNKNOWN


class TestDecodeBareVerbs:

    @pytest.mark.parametrize("raw", [b"LIST_SAVES", b"LIST_DROPBOX_SAVES"])
    def test_list(self, raw):
        assert decode_command(raw).kind == CommandKind.LIST_SAVES

    @pytest.mark.parametrize("raw", [b"GET_STATUS", b"STATUS"])
    def test_status(self, raw):
        assert decode_command(raw).kind == CommandKind.STATUS

    def test_no_arg_verb_with_argument(self):
        assert decode_command(b"GET_STATUS now").kind == CommandKind.UNKNOWN


class TestDecodeUnknown:
    """Nothing the peer sends makes decoding fail."""

    def test_unrecognized_verb(self):
        cmd = decode_command(b"FOO:bar")
        assert cmd.kind == CommandKind.UNKNOWN
        assert cmd.raw == "FOO:bar"

    def test_verbs_are_case_sensitive(self):
        assert decode_command(b"upload:7").kind == CommandKind.UNKNOWN

    def test_empty_buffer(self):
        cmd = decode_command(b"")
        assert cmd.kind == CommandKind.UNKNOWN
        assert cmd.raw == ""

    def test_nul_padding_from_c_peers(self):
        assert decode_command(b"GET_STATUS\x00\x00\x00").kind == CommandKind.STATUS

    def test_invalid_utf8_is_replaced(self):
        cmd = decode_command(b"UPLOAD:\xff7")
        assert cmd.kind == CommandKind.UPLOAD
        assert cmd.turn == "\ufffd7"

    def test_truncated_buffer_parses_under_same_grammar(self):
        full = b"UPLOAD:" + b"9" * 2000
        cmd = decode_command(full[:1024])
        assert cmd.kind == CommandKind.UPLOAD
        assert len(cmd.turn) == 1024 - len("UPLOAD:")


class TestEncode:

    def test_ack_is_one_line(self):
        assert encode_response(Response.ack("UPLOAD_OK")) == b"UPLOAD_OK\n"

    def test_error_is_one_line(self):
        data = encode_response(Response.error("UPLOAD_FAIL: missing"))
        assert data == b"UPLOAD_FAIL: missing\n"

    def test_load_carries_summary_and_token(self):
        resp = Response.load("/saves/turn_7.sav", "DOWNLOAD_OK: downloaded turn_7.sav")
        text = encode_response(resp).decode()
        assert text.startswith("DOWNLOAD_OK: downloaded turn_7.sav")
        assert "LOAD:/saves/turn_7.sav" in text

    def test_load_without_summary(self):
        assert encode_response(Response.load("/x.sav")) == b"LOAD:/x.sav\n"

    def test_limit_truncates(self):
        data = encode_response(Response.ack("x" * 100), limit=10)
        assert data == b"x" * 10

    def test_limit_never_splits_a_character(self):
        data = encode_response(Response.ack("é" * 10), limit=5)
        assert data.decode("utf-8") == "éé"


class TestParseLoadInstruction:

    def test_extracts_path(self):
        text = "DOWNLOAD_OK: downloaded turn_7.sav | LOAD:/saves/turn_7.sav"
        assert parse_load_instruction(text) == "/saves/turn_7.sav"

    def test_no_token(self):
        assert parse_load_instruction("UPLOAD_OK") is None

    def test_empty_path(self):
        assert parse_load_instruction("LOAD:") is None
