"""
Unit tests for the arduino-cli wrapper
"""
import asyncio
import sys
from asyncio.subprocess import Process
from pathlib import Path
from unittest.mock import patch

import pytest

from src.services.toolchain import (
    LAUNCH_FAILURE_RETURNCODE,
    TIMEOUT_RETURNCODE,
    ArduinoCli,
    ProcessResult,
)


class TestCommands:
    """Command line construction"""

    def test_compile_command(self):
        cli = ArduinoCli(["arduino-cli"])
        argv = cli.compile_command("arduino:avr:uno", Path("/tmp/sketch_1"))
        assert argv == ["arduino-cli", "compile", "--fqbn", "arduino:avr:uno", "/tmp/sketch_1"]

    def test_compile_command_with_output_dir(self):
        cli = ArduinoCli(["arduino-cli", "--config-dir", "/opt/arduino"])
        argv = cli.compile_command(
            "esp32:esp32:esp32", Path("/tmp/sketch_1"), Path("/tmp/sketch_1/build")
        )
        assert argv == [
            "arduino-cli", "--config-dir", "/opt/arduino",
            "compile", "--fqbn", "esp32:esp32:esp32",
            "--output-dir", "/tmp/sketch_1/build",
            "/tmp/sketch_1",
        ]

    def test_upload_command(self):
        cli = ArduinoCli()
        argv = cli.upload_command("/dev/ttyACM0", "arduino:avr:uno", Path("/tmp/sketch_1"))
        assert argv == [
            "arduino-cli", "upload", "-p", "/dev/ttyACM0",
            "--fqbn", "arduino:avr:uno", "/tmp/sketch_1",
        ]

    def test_upload_command_with_extra_cli_options(self):
        cli = ArduinoCli(["arduino-cli", "--config-dir", "/opt/arduino"])
        argv = cli.upload_command("COM7", "arduino:avr:uno", Path("s"))
        assert argv == [
            "arduino-cli", "--config-dir", "/opt/arduino",
            "upload", "-p", "COM7", "--fqbn", "arduino:avr:uno", "s",
        ]

    def test_max_concurrent_has_floor_of_one(self):
        assert ArduinoCli(max_concurrent=0).max_concurrent == 1


class TestProcessResult:
    def test_succeeded(self):
        assert ProcessResult(0).succeeded is True
        assert ProcessResult(2, stderr="boom").succeeded is False


class TestRun:
    """Running real processes"""

    @pytest.mark.asyncio
    async def test_captures_stdout_stderr_and_exit(self):
        cli = ArduinoCli()
        script = "import sys; sys.stdout.write('out'); sys.stderr.write('err'); sys.exit(3)"
        result = await cli.run([sys.executable, "-c", script], timeout=30)

        assert result.returncode == 3
        assert result.stdout == "out"
        assert result.stderr == "err"

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self):
        cli = ArduinoCli()
        script = "import sys; sys.stdout.buffer.write(b'ok\\xff')"
        result = await cli.run([sys.executable, "-c", script], timeout=30)

        assert result.succeeded
        assert result.stdout.startswith("ok")

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        cli = ArduinoCli()
        result = await cli.run([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5)

        assert result.returncode == TIMEOUT_RETURNCODE
        assert "timed out after 0.5 seconds" in result.stderr

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        cli = ArduinoCli([str(tmp_path / "missing-cli")])
        result = await cli.compile("arduino:avr:uno", tmp_path)

        assert result.returncode == LAUNCH_FAILURE_RETURNCODE
        assert result.stderr

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, tmp_path):
        cli = ArduinoCli(max_concurrent=1)
        marker = tmp_path / "running"
        script = (
            "import sys, time, pathlib\n"
            "m = pathlib.Path(sys.argv[1])\n"
            "if m.exists(): sys.exit(9)\n"
            "m.touch(); time.sleep(0.3); m.unlink()\n"
        )
        argv = [sys.executable, "-c", script, str(marker)]

        results = await asyncio.gather(*(cli.run(argv, timeout=30) for _ in range(3)))

        assert [r.returncode for r in results] == [0, 0, 0]

    @pytest.mark.asyncio
    async def test_cancellation_kills_process(self, tmp_path):
        cli = ArduinoCli()
        pid_file = tmp_path / "pid"
        script = (
            "import os, sys, time, pathlib\n"
            "pathlib.Path(sys.argv[1]).write_text(str(os.getpid()))\n"
            "time.sleep(30)\n"
        )
        task = asyncio.create_task(
            cli.run([sys.executable, "-c", script, str(pid_file)], timeout=60)
        )
        for _ in range(100):
            if pid_file.exists() and pid_file.read_text():
                break
            await asyncio.sleep(0.05)

        real_kill = Process.kill
        with patch.object(Process, "kill", autospec=True, side_effect=real_kill) as mock_kill:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        mock_kill.assert_called_once()
        assert not cli.semaphore.locked()
