from __future__ import annotations

from collections.abc import Mapping
import logging
import subprocess


class CommandError(RuntimeError):
    def __init__(self, argv: list[str], returncode: int, stdout: str, stderr: str) -> None:
        super().__init__(
            "Command failed\n"
            f"cmd: {' '.join(argv)}\n"
            f"exit: {returncode}\n"
            f"stdout:\n{stdout}\n"
            f"stderr:\n{stderr}"
        )
        self.argv = argv
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


LOGGER = logging.getLogger("omnicomment.shell")

# Shell convention for "command not found".
_NOT_FOUND_EXIT_CODE = 127


def _preview(text: str, *, limit: int = 200) -> str:
    compact = text.replace("\n", "\\n").strip()
    if not compact:
        return "<empty>"
    if len(compact) <= limit:
        return compact
    return f"{compact[:limit]}..."


def run(
    argv: list[str],
    *,
    input_text: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    try:
        proc = subprocess.run(
            argv,
            input=input_text,
            env=dict(env) if env is not None else None,
            text=True,
            capture_output=True,
            check=False,
        )
    except FileNotFoundError as exc:
        LOGGER.error("event=command_not_found command=%s", argv[0])
        raise CommandError(
            argv, _NOT_FOUND_EXIT_CODE, "", f"{argv[0]}: command not found"
        ) from exc
    if check and proc.returncode != 0:
        LOGGER.error(
            "event=command_failed command=%s exit_code=%s stderr=%s stdout=%s",
            " ".join(argv),
            proc.returncode,
            _preview(proc.stderr),
            _preview(proc.stdout),
        )
        raise CommandError(argv, proc.returncode, proc.stdout, proc.stderr)
    return proc.stdout
