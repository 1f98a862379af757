"""Running helper scripts inside a Python interpreter."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from kernelpaths.duration import parse_duration
from kernelpaths.types import Duration, ExecResult, Interpreter

logger = logging.getLogger(__name__)

DATA_DIR_PROBE_SCRIPT = Path(__file__).parent / "scripts" / "print_jupyter_data_dir.py"


class InterpreterExecutionError(RuntimeError):
    """The interpreter could not run a script to completion."""

    def __init__(self, interpreter: Interpreter, message: str, stderr: str = "") -> None:
        super().__init__(f"{interpreter.id}: {message}")
        self.interpreter = interpreter
        self.stderr = stderr


@runtime_checkable
class InterpreterExecutor(Protocol):
    """Runs a script with a given interpreter."""

    async def execute(self, interpreter: Interpreter, script: Path, args: list[str]) -> ExecResult:
        """Run script and capture its output."""
        ...


class SubprocessInterpreterExecutor:
    """InterpreterExecutor that spawns `<executable> <script> <args...>`."""

    def __init__(self, *, timeout: Duration = "30s") -> None:
        self._timeout = parse_duration(timeout)

    async def execute(self, interpreter: Interpreter, script: Path, args: list[str]) -> ExecResult:
        logger.debug("Running %s with %s", script.name, interpreter.executable)
        try:
            process = await asyncio.create_subprocess_exec(
                str(interpreter.executable),
                str(script),
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise InterpreterExecutionError(interpreter, f"cannot start: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self._timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise InterpreterExecutionError(
                interpreter, f"{script.name} timed out after {self._timeout:g}s"
            ) from None

        result = ExecResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        if process.returncode != 0:
            raise InterpreterExecutionError(
                interpreter,
                f"{script.name} exited with code {process.returncode}",
                stderr=result.stderr,
            )
        return result
