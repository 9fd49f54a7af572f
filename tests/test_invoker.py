"""Tests for SubprocessInvoker against real child processes."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

import pytest

from hookline import SubprocessInvoker
from hookline.protocols import Invoker
from tests.conftest import write_hook_script


@pytest.fixture
def invoker() -> SubprocessInvoker:
    return SubprocessInvoker()


class TestSubprocessInvoker:

    def test_implements_protocol(self, invoker) -> None:
        assert isinstance(invoker, Invoker)

    def test_captures_output_and_exit_code(self, invoker, tmp_path: Path) -> None:
        argv = write_hook_script(
            tmp_path, "out",
            """
            import sys
            print("to stdout")
            print("to stderr", file=sys.stderr)
            sys.exit(3)
            """,
        )
        outcome = invoker.invoke(argv, stdin="", env={}, timeout_s=10)
        assert outcome.exit_code == 3
        assert outcome.stdout.strip() == "to stdout"
        assert outcome.stderr.strip() == "to stderr"
        assert not outcome.timed_out
        assert outcome.duration_ms > 0

    def test_stdin_passed(self, invoker, tmp_path: Path) -> None:
        argv = write_hook_script(tmp_path, "cat", "import sys\nprint(sys.stdin.read().upper())\n")
        outcome = invoker.invoke(argv, stdin='{"a": 1}', env={}, timeout_s=10)
        assert outcome.stdout.strip() == '{"A": 1}'

    def test_arguments_not_shell_interpreted(self, invoker, tmp_path: Path) -> None:
        argv = write_hook_script(tmp_path, "args", "import sys\nprint(sys.argv[1])\n")
        tricky = "$(echo pwned); echo `id` > x && $HOME"
        outcome = invoker.invoke((*argv, tricky), stdin="", env={}, timeout_s=10)
        assert outcome.stdout.strip() == tricky
        assert not (tmp_path / "x").exists()

    def test_environment_layered_on_process_env(self, invoker, tmp_path: Path) -> None:
        argv = write_hook_script(
            tmp_path, "env",
            "import os\nprint(os.environ['HOOKLINE_BASE_DIR'], 'PATH' in os.environ)\n",
        )
        outcome = invoker.invoke(argv, stdin="", env={"HOOKLINE_BASE_DIR": "/b"}, timeout_s=10)
        assert outcome.stdout.split() == ["/b", "True"]

    def test_environment_isolated(self, tmp_path: Path) -> None:
        argv = write_hook_script(
            tmp_path, "env",
            "import os\nprint(os.environ.get('HOOKLINE_TEST_MARKER', 'absent'))\n",
        )
        os.environ["HOOKLINE_TEST_MARKER"] = "present"
        try:
            outcome = SubprocessInvoker(inherit_env=False).invoke(
                argv, stdin="", env={"SYSTEMROOT": os.environ.get("SYSTEMROOT", "")},
                timeout_s=10,
            )
        finally:
            del os.environ["HOOKLINE_TEST_MARKER"]
        assert outcome.stdout.strip() == "absent"

    def test_timeout_kills_process(self, invoker, tmp_path: Path) -> None:
        argv = write_hook_script(tmp_path, "sleepy", "import time\ntime.sleep(30)\n")
        start = time.monotonic()
        outcome = invoker.invoke(argv, stdin="", env={}, timeout_s=0.3)
        assert outcome.timed_out
        assert outcome.exit_code is None
        assert time.monotonic() - start < 5

    def test_missing_executable_raises(self, invoker, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            invoker.invoke([str(tmp_path / "missing")], stdin="", env={}, timeout_s=1)

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_non_executable_raises(self, invoker, tmp_path: Path) -> None:
        script = tmp_path / "plain.sh"
        script.write_text("#!/bin/sh\necho hi\n")
        script.chmod(0o644)
        with pytest.raises(PermissionError):
            invoker.invoke([str(script)], stdin="", env={}, timeout_s=1)

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX sessions")
    def test_detached_descendant_does_not_block_return(self, invoker, detached_hook) -> None:
        start = time.monotonic()
        outcome = invoker.invoke(detached_hook, stdin="", env={}, timeout_s=0.5)
        assert outcome.timed_out
        assert outcome.exit_code is None
        assert time.monotonic() - start < 5
