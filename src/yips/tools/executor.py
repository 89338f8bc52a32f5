"""Built-in tool executor with two-phase file changes."""

from __future__ import annotations

import asyncio
import contextlib
import os
import re
import shutil
import subprocess
import time
import uuid
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from yips.core.types import ToolCall, ToolResult
from yips.tools.diff import build_diff_preview
from yips.tools.inputs import (
    MAX_COMMAND_TIMEOUT_MS,
    ApplyChangeInput,
    GrepInput,
    ListDirInput,
    PreviewEditInput,
    PreviewWriteInput,
    ReadFileInput,
    RunCommandInput,
)
from yips.tools.risk import is_within_session_root, resolve_session_path
from yips.tools.staging import FileChangeOperation, FileChangeStore, hash_content

InputT = TypeVar("InputT", bound=BaseModel)
ToolHandler = Callable[[ToolCall], ToolResult]
DEFAULT_COMMAND_TIMEOUT_MS = 60_000


class ToolExecutor:
    """Executes built-in tool calls relative to one working directory.

    File writes never happen directly: ``preview_*`` (and the legacy
    ``write_file``/``edit_file`` names) only stage a change, and
    ``apply_file_change`` commits it after checking the file is unchanged.
    """

    def __init__(
        self,
        working_directory: str | Path,
        file_change_store: FileChangeStore,
        *,
        command_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS,
    ) -> None:
        self.working_directory = os.path.abspath(working_directory)
        self.file_change_store = file_change_store
        self.command_timeout_ms = min(command_timeout_ms, MAX_COMMAND_TIMEOUT_MS)
        self._handlers: dict[str, ToolHandler] = {
            "read_file": self._read_file,
            "list_dir": self._list_dir,
            "grep": self._grep,
            "run_command": self._run_command,
            "preview_write_file": self._preview_write,
            "preview_edit_file": self._preview_edit,
            "apply_file_change": self._apply_change,
            "write_file": lambda call: self._preview_write(call, legacy_translated=True),
            "edit_file": lambda call: self._preview_edit(call, legacy_translated=True),
        }

    def execute(self, call: ToolCall) -> ToolResult:
        handler = self._handlers.get(call.name)
        if handler is None:
            return _error(call, f"Unsupported tool: {call.name}")

        logger.info("tool.call.start name={} id={}", call.name, call.id)
        start = time.monotonic()
        try:
            return handler(call)
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", call.name, duration * 1000)

    async def execute_many(self, calls: Sequence[ToolCall]) -> list[ToolResult]:
        results: list[ToolResult] = []
        for call in calls:
            results.append(await asyncio.to_thread(self.execute, call))
        return results

    def _resolve(self, path: str) -> str:
        return resolve_session_path(path, self.working_directory)

    def _read_file(self, call: ToolCall) -> ToolResult:
        params = _parse(call, ReadFileInput)
        if isinstance(params, ToolResult):
            return params

        path = self._resolve(params.path)
        try:
            content = _read_text(path)
        except (OSError, UnicodeError) as exc:
            return _error(call, f"read_file failed: {exc!s}", {"path": path})

        clipped = content[: params.max_bytes]
        truncated = len(clipped) < len(content)
        output = f"{clipped}\n\n[truncated at {params.max_bytes} bytes]" if truncated else clipped
        return _ok(call, output, {"path": path, "maxBytes": params.max_bytes, "truncated": truncated})

    def _list_dir(self, call: ToolCall) -> ToolResult:
        params = _parse(call, ListDirInput)
        if isinstance(params, ToolResult):
            return params

        path = self._resolve(params.path)
        try:
            with os.scandir(path) as entries:
                lines = sorted(f"{'dir ' if entry.is_dir() else 'file'} {entry.name}" for entry in entries)
        except OSError as exc:
            return _error(call, f"list_dir failed: {exc!s}", {"path": path})
        return _ok(call, "\n".join(lines), {"path": path, "count": len(lines)})

    def _grep(self, call: ToolCall) -> ToolResult:
        params = _parse(call, GrepInput)
        if isinstance(params, ToolResult):
            return params

        base = Path(self._resolve(params.path))
        metadata: dict[str, Any] = {"path": str(base), "maxMatches": params.max_matches}
        try:
            regex = re.compile(params.pattern)
        except re.error as exc:
            return _error(call, f"grep failed: {exc!s}", metadata)
        if not base.exists():
            return _error(call, f"grep failed: no such path: {base}", metadata)

        candidates = [base] if base.is_file() else sorted(p for p in base.rglob("*") if p.is_file())
        matches: list[str] = []
        for file_path in candidates:
            try:
                text = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeError):
                continue
            for idx, line in enumerate(text.splitlines(), start=1):
                if regex.search(line):
                    matches.append(f"{file_path}:{idx}:{line}")
                    if len(matches) >= params.max_matches:
                        return _ok(call, "\n".join(matches), metadata)
        return _ok(call, "\n".join(matches), metadata)

    def _run_command(self, call: ToolCall) -> ToolResult:
        params = _parse(call, RunCommandInput)
        if isinstance(params, ToolResult):
            return params

        cwd = self._resolve(params.cwd)
        timeout_ms = params.timeout_ms if "timeout_ms" in params.model_fields_set else self.command_timeout_ms
        bash_executable = shutil.which("bash") or "bash"
        try:
            result = subprocess.run(  # noqa: S603
                [bash_executable, "-lc", params.command],
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout_ms / 1000,
            )
        except subprocess.TimeoutExpired as exc:
            output = _decode(exc.stdout) + _decode(exc.stderr)
            return ToolResult(
                call_id=call.id,
                tool=call.name,
                status="timeout",
                output=output.strip() or f"Command timed out after {timeout_ms}ms.",
                metadata={"exitCode": None, "timedOut": True, "cwd": cwd},
            )
        except (OSError, subprocess.SubprocessError) as exc:
            return _error(call, f"run_command failed: {exc!s}", {"cwd": cwd})

        output = ((result.stdout or "") + (result.stderr or "")).strip()
        return ToolResult(
            call_id=call.id,
            tool=call.name,
            status="ok" if result.returncode == 0 else "error",
            output=output,
            metadata={"exitCode": result.returncode, "timedOut": False, "cwd": cwd},
        )

    def _preview_write(self, call: ToolCall, *, legacy_translated: bool = False) -> ToolResult:
        params = _parse(call, PreviewWriteInput)
        if isinstance(params, ToolResult):
            return params

        path = self._resolve(params.path)
        try:
            before = _read_if_exists(path)
        except (OSError, UnicodeError) as exc:
            return _error(call, f"preview_write_file failed: {exc!s}", {"path": path})

        return self._stage(call, "write_file", path, before, params.content, legacy_translated=legacy_translated)

    def _preview_edit(self, call: ToolCall, *, legacy_translated: bool = False) -> ToolResult:
        params = _parse(call, PreviewEditInput)
        if isinstance(params, ToolResult):
            return params

        path = self._resolve(params.path)
        try:
            before = _read_text(path)
        except (OSError, UnicodeError) as exc:
            return _error(call, f"preview_edit_file failed: {exc!s}", {"path": path})

        if params.old_text not in before:
            return _error(call, "preview_edit_file failed: 'oldText' was not found in file.", {"path": path})

        after = (
            before.replace(params.old_text, params.new_text)
            if params.replace_all
            else before.replace(params.old_text, params.new_text, 1)
        )
        return self._stage(
            call,
            "edit_file",
            path,
            before,
            after,
            legacy_translated=legacy_translated,
            extra={"replaceAll": params.replace_all},
        )

    def _stage(
        self,
        call: ToolCall,
        operation: FileChangeOperation,
        path: str,
        before: str,
        after: str,
        *,
        legacy_translated: bool,
        extra: dict[str, Any] | None = None,
    ) -> ToolResult:
        diff_preview = build_diff_preview(before, after)
        preview = self.file_change_store.create_preview(
            operation=operation,
            absolute_path=path,
            before=before,
            after=after,
            diff_preview=diff_preview,
        )
        metadata: dict[str, Any] = {
            "token": preview.token,
            "path": path,
            "operation": operation,
            "diffPreview": diff_preview,
            "bytesBefore": len(before),
            "bytesAfter": len(after),
            "expiresAt": preview.expires_at_iso,
            **(extra or {}),
        }
        if legacy_translated:
            metadata["legacyTranslated"] = True
        verb = "write" if operation == "write_file" else "edit"
        return _ok(call, f"Staged {verb} for {path}\nToken: {preview.token}\n{diff_preview}", metadata)

    def _apply_change(self, call: ToolCall) -> ToolResult:
        try:
            params = ApplyChangeInput.model_validate(call.arguments)
        except ValidationError:
            return _error(
                call,
                "apply_file_change requires a non-empty 'token' argument.",
                {"token": "", "reason": "missing-token"},
            )

        token = params.token
        preview = self.file_change_store.consume(token)
        if preview is None:
            return _error(
                call,
                "apply_file_change failed: token is invalid or expired.",
                {"token": token, "reason": "invalid-or-expired-token"},
            )

        path = preview.absolute_path
        if not is_within_session_root(path, self.working_directory):
            return _error(
                call,
                "apply_file_change failed: path is outside the working zone.",
                {"token": token, "path": path, "reason": "outside-working-zone"},
            )

        try:
            current = _read_if_exists(path)
        except (OSError, UnicodeError) as exc:
            return _error(
                call,
                f"apply_file_change failed: {exc!s}",
                {"token": token, "path": path, "reason": "apply-write-failed"},
            )
        if hash_content(current) != preview.content_hash_before:
            logger.warning("tool.apply.stale path={}", path)
            return _error(
                call,
                "apply_file_change failed: file changed since preview; re-run preview.",
                {"token": token, "path": path, "reason": "stale-preview"},
            )

        try:
            write_file_atomic(path, preview.after)
        except OSError as exc:
            return _error(
                call,
                f"apply_file_change failed: {exc!s}",
                {"token": token, "path": path, "reason": "apply-write-failed"},
            )

        return _ok(
            call,
            f"Applied {preview.operation} for {path}\n{preview.diff_preview}",
            {
                "path": path,
                "operation": preview.operation,
                "token": token,
                "applied": True,
                "diffPreview": preview.diff_preview,
            },
        )


def write_file_atomic(path: str, content: str) -> None:
    """Write through a sibling temp file and rename it over ``path``."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.with_name(f"{target.name}.yips-tmp-{uuid.uuid4().hex}")
    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(temp_path, target)
    except OSError:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise


def _read_if_exists(path: str) -> str:
    file_path = Path(path)
    if not file_path.exists():
        return ""
    return _read_text(path)


def _read_text(path: str | Path) -> str:
    with open(path, encoding="utf-8", newline="") as handle:
        return handle.read()


def _parse(call: ToolCall, model: type[InputT]) -> InputT | ToolResult:
    try:
        return model.model_validate(call.arguments)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}" for error in exc.errors()
        )
        return _error(call, f"{call.name} received invalid arguments: {problems}")


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _ok(call: ToolCall, output: str, metadata: dict[str, Any] | None = None) -> ToolResult:
    return ToolResult(call_id=call.id, tool=call.name, status="ok", output=output, metadata=metadata)


def _error(call: ToolCall, output: str, metadata: dict[str, Any] | None = None) -> ToolResult:
    return ToolResult(call_id=call.id, tool=call.name, status="error", output=output, metadata=metadata)
