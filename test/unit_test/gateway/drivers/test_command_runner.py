from __future__ import annotations

import sys
from pathlib import Path

import pytest

from ikoma_mcp.gateway.drivers.process import CommandRunner
from ikoma_mcp.gateway.errors import CommandFailedError
from ikoma_mcp.gateway.schemas.domain import ErrorCode

pytestmark = pytest.mark.asyncio


async def test_captures_output(tmp_path: Path) -> None:
    runner = CommandRunner()
    result = await runner.run(
        [sys.executable, "-c", "import os, sys; print(os.getcwd()); sys.stderr.write(os.environ['MARK'])"],
        cwd=tmp_path,
        env={"MARK": "from-env"},
    )

    assert result.ok
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()
    assert result.stderr == "from-env"
    assert result.output.endswith("from-env")
    assert result.argv[0] == sys.executable


async def test_arguments_are_not_shell_interpreted() -> None:
    result = await CommandRunner().run([sys.executable, "-c", "import sys; print(sys.argv[1])", "$(whoami); rm -rf /"])
    assert result.stdout.strip() == "$(whoami); rm -rf /"


async def test_non_zero_exit_raises() -> None:
    with pytest.raises(CommandFailedError) as exc_info:
        await CommandRunner().run([sys.executable, "-c", "import sys; sys.stderr.write('bad thing\\n'); sys.exit(3)"])

    err = exc_info.value
    assert err.returncode == 3
    assert err.code is ErrorCode.orchestration_failed
    assert err.message.endswith("exited with status 3: bad thing")


async def test_check_false_returns_result() -> None:
    result = await CommandRunner().run([sys.executable, "-c", "raise SystemExit(2)"], check=False)
    assert not result.ok
    assert result.returncode == 2


async def test_missing_binary() -> None:
    with pytest.raises(CommandFailedError) as exc_info:
        await CommandRunner().run(["definitely-not-a-real-binary-ikoma"])
    assert exc_info.value.returncode is None


async def test_timeout_kills_process() -> None:
    with pytest.raises(CommandFailedError) as exc_info:
        await CommandRunner().run([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2)
    assert "timed out" in exc_info.value.message
