# tests/test_cli.py
"""
Tests for the ``canalysis`` command-line interface and its configuration.
"""

import json

import pytest

from canalysis.config import BindOrder, ReadOptions
from canalysis.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main
from canalysis.records import Family
from tests.conftest import SAMPLE_FILE, write_unit


class TestReadCommand:

    def test_clean_read(self, sample_dir, capsys):
        rc = main(["read", str(sample_dir), "--sequential", "--no-color"])
        out = capsys.readouterr().out
        assert rc == EXIT_OK
        assert "1 file(s), 1 function(s)" in out
        assert "no errors" in out

    def test_json_format(self, sample_dir, capsys):
        rc = main(["read", str(sample_dir), "--format", "json", "--workers", "2"])
        data = json.loads(capsys.readouterr().out)
        assert rc == EXIT_OK
        assert data["files"] == [SAMPLE_FILE]
        assert data["functions"] == ["list.c:main"]
        assert data["domains"]["type"]["bound"] == 10
        assert data["errors"] == []

    def test_errors_give_exit_one(self, sample_dir, capsys):
        write_unit(sample_dir, Family.CDICT, "orphan.c", {})
        rc = main(["read", str(sample_dir), "--sequential", "--no-color"])
        out = capsys.readouterr().out
        assert rc == EXIT_ERROR
        assert "orphan.c: no CFILE records (required by CDICT)" in out
        assert "--- 1 error(s) ---" in out

    def test_missing_directory(self, tmp_path):
        assert main(["read", str(tmp_path / "nope")]) == EXIT_INFRA

    def test_no_command(self):
        assert main([]) == EXIT_INFRA


class TestDumpCommand:

    def test_types(self, sample_dir, capsys):
        rc = main(["dump", str(sample_dir), "--file", SAMPLE_FILE, "--what", "types",
                   "--sequential", "--no-color"])
        out = capsys.readouterr().out
        assert rc == EXIT_OK
        assert "  2: ((int) *)" in out
        assert "  7: -xyz-" in out

    def test_predicates_are_indented(self, sample_dir, capsys):
        main(["dump", str(sample_dir), "--file", SAMPLE_FILE, "--what", "predicates",
              "--sequential", "--no-color"])
        out = capsys.readouterr().out
        assert "  1: Not Null\n    \tp" in out

    def test_obligations(self, sample_dir, capsys):
        main(["dump", str(sample_dir), "--file", SAMPLE_FILE, "--what", "spos",
              "--no-color", "--bind-order", "reversed"])
        out = capsys.readouterr().out
        assert "main#1: secondary #1 [violation] Int Overflow" in out

    def test_unknown_file(self, sample_dir):
        rc = main(["dump", str(sample_dir), "--file", "nope.c", "--sequential"])
        assert rc == EXIT_INFRA


class TestReadOptions:

    def test_defaults(self):
        opts = ReadOptions()
        assert opts.parallel
        assert opts.max_workers is None
        assert opts.bind_order is BindOrder.DECLARATION
        assert not opts.sequential

    def test_test_mode_forces_sequential(self):
        opts = ReadOptions.from_env({"CANALYSIS_TEST_MODE": "1"})
        assert not opts.parallel
        assert opts.sequential

    def test_worker_count(self):
        assert ReadOptions.from_env({"CANALYSIS_WORKERS": "3"}).max_workers == 3
        assert ReadOptions.from_env({"CANALYSIS_WORKERS": "lots"}).max_workers is None

    def test_overrides_win(self):
        opts = ReadOptions.from_env({"CANALYSIS_WORKERS": "3"}, max_workers=1, parallel=None)
        assert opts.max_workers == 1
        assert opts.sequential

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            ReadOptions(max_workers=0)
