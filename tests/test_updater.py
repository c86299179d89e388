"""Tests for the Updater."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from modcheck.engines.version_resolution.errors import (
    ManifestNotFoundError,
    ModuleIgnoredError,
    NoVersionAvailableError,
    WriteFailedError,
)
from modcheck.engines.version_resolution.models import CheckResult
from modcheck.engines.version_resolution.updater import Updater
from modcheck.engines.version_resolution.versions import parse_version

_GO_MOD = """module example.com/app

go 1.21

require github.com/single/dep v0.3.0

require (
\texample.com/a v1.0.0
\texample.com/b v2.1.0 // indirect
\t"example.com/quoted" v0.1.0
)

replace example.com/a v1.0.0 => ../a
"""


def _result(local: str, latest: str | None = None, error=None) -> CheckResult:
    return CheckResult(
        local_version=parse_version(local),
        latest_version=parse_version(latest) if latest else None,
        error=error,
    )


class TestUpdater:
    def test_rewrites_only_the_pin(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        outcomes = Updater(f).apply({"example.com/a": _result("v1.0.0", "v1.2.0")})

        assert outcomes["example.com/a"].updated == parse_version("v1.2.0")
        assert outcomes["example.com/a"].error is None
        # replace directive keeps the old version
        assert f.read_text() == _GO_MOD.replace(
            "\texample.com/a v1.0.0\n", "\texample.com/a v1.2.0\n"
        )

    def test_preserves_comments_and_quotes(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        Updater(f).apply(
            {
                "example.com/b": _result("v2.1.0", "v2.3.0"),
                "example.com/quoted": _result("v0.1.0", "v0.2.0"),
                "github.com/single/dep": _result("v0.3.0", "v0.4.1"),
            }
        )
        text = f.read_text()
        assert "\texample.com/b v2.3.0 // indirect\n" in text
        assert '\t"example.com/quoted" v0.2.0\n' in text
        assert "require github.com/single/dep v0.4.1\n" in text

    def test_preserves_crlf(self, write_go_mod):
        f = write_go_mod("")
        f.write_bytes(b"module example.com/app\r\nrequire example.com/a v1.0.0\r\n")
        Updater(f).apply({"example.com/a": _result("v1.0.0", "v1.1.0")})
        assert f.read_bytes() == b"module example.com/app\r\nrequire example.com/a v1.1.0\r\n"

    def test_skips_errored_ignored_and_current(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        outcomes = Updater(f).apply(
            {
                "example.com/a": _result("v1.0.0", error=ModuleIgnoredError()),
                "example.com/b": _result("v2.1.0", "v2.1.0"),
                "example.com/quoted": _result("v0.1.0", error=NoVersionAvailableError()),
            }
        )
        assert outcomes == {}
        assert f.read_text() == _GO_MOD

    def test_result_without_latest_is_skipped(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        outcomes = Updater(f).apply(
            {
                "example.com/a": _result("v1.0.0"),
                "example.com/b": _result("v2.1.0", "v2.2.0"),
            }
        )
        assert set(outcomes) == {"example.com/b"}
        assert "\texample.com/a v1.0.0\n" in f.read_text()

    def test_failure_does_not_block_others(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        outcomes = Updater(f).apply(
            {
                "example.com/missing": _result("v1.0.0", "v1.1.0"),
                "example.com/a": _result("v1.0.0", "v1.2.0"),
            }
        )
        missing = outcomes["example.com/missing"]
        assert missing.updated is None
        assert isinstance(missing.error, WriteFailedError)
        assert missing.error.kind == "write_failed"
        assert outcomes["example.com/a"].updated == parse_version("v1.2.0")

    def test_stale_pin_is_rejected(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        outcomes = Updater(f).apply({"example.com/a": _result("v0.9.0", "v1.2.0")})
        assert isinstance(outcomes["example.com/a"].error, WriteFailedError)
        assert "pin changed" in str(outcomes["example.com/a"].error)
        assert f.read_text() == _GO_MOD

    def test_write_error_leaves_file_intact(self, write_go_mod, tmp_path):
        f = write_go_mod(_GO_MOD)
        with patch(
            "modcheck.engines.version_resolution.updater.os.replace",
            side_effect=OSError("disk full"),
        ):
            outcomes = Updater(f).apply(
                {
                    "example.com/a": _result("v1.0.0", "v1.2.0"),
                    "example.com/b": _result("v2.1.0", "v2.2.0"),
                }
            )
        assert all(isinstance(o.error, WriteFailedError) for o in outcomes.values())
        assert "disk full" in str(outcomes["example.com/a"].error)
        assert f.read_text() == _GO_MOD
        # No temp files left behind
        assert [p.name for p in tmp_path.iterdir()] == ["go.mod"]

    def test_keeps_file_mode(self, write_go_mod):
        f = write_go_mod(_GO_MOD)
        os.chmod(f, 0o640)
        Updater(f).apply({"example.com/a": _result("v1.0.0", "v1.2.0")})
        assert f.stat().st_mode & 0o777 == 0o640

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestNotFoundError):
            Updater(tmp_path).apply({"example.com/a": _result("v1.0.0", "v1.2.0")})

    def test_directory_location(self, write_go_mod, tmp_path):
        write_go_mod(_GO_MOD)
        outcomes = Updater(tmp_path).apply({"example.com/a": _result("v1.0.0", "v1.2.0")})
        assert outcomes["example.com/a"].updated == parse_version("v1.2.0")
