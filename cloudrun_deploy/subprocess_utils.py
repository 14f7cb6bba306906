from __future__ import annotations

import shlex
import subprocess
import sys
import threading
from dataclasses import dataclass
from textwrap import shorten
from typing import Sequence

from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def _not_found(cmd: Sequence[str]) -> RuntimeError:
    return RuntimeError(
        f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud 가 설치되어 있는지 확인하세요)"
    )


def _timed_out(cmd: Sequence[str], timeout: float | None) -> RuntimeError:
    return RuntimeError(f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}")


def _run_streaming(cmd: Sequence[str], timeout: float | None) -> RunResult:
    # gcloud 는 stderr 로 진행 로그를 내보내므로 STDOUT 으로 합친다.
    try:
        proc = subprocess.Popen(  # noqa: S603
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError as e:
        raise _not_found(cmd) from e

    # 출력 없이 stdout 만 열어둔 채 멈춘 프로세스도 timeout 에 걸리도록 watchdog 으로 kill 한다.
    expired = threading.Event()

    def _kill() -> None:
        expired.set()
        proc.kill()

    watchdog: threading.Timer | None = None
    if timeout is not None:
        watchdog = threading.Timer(float(timeout), _kill)
        watchdog.daemon = True
        watchdog.start()

    out_lines: list[str] = []
    try:
        assert proc.stdout is not None
        for line in proc.stdout:
            out_lines.append(line)
            sys.stdout.write(line)
            sys.stdout.flush()
        returncode = proc.wait()
    finally:
        if watchdog is not None:
            watchdog.cancel()
        if proc.stdout is not None:
            proc.stdout.close()

    if expired.is_set():
        raise _timed_out(cmd, timeout)

    if returncode != 0:
        combined = "".join(out_lines).strip()
        detail = "\nstdout/stderr:\n" + shorten(combined, width=2000) if combined else ""
        raise RuntimeError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={returncode}){detail}"
        )

    return RunResult(returncode=returncode, stdout="".join(out_lines), stderr="")


def run_command(
    cmd: Sequence[str],
    *,
    timeout: float | None = 1800.0,
    stream_output: bool = False,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stream_output=False: stdout/stderr 캡처, 실패 시 요약 포함 (이미지 빌드 단계)
    - stream_output=True : stdout/stderr 를 실시간으로 터미널에 흘린다(gcloud 배포 진행 상황 확인용)

    두 모드 모두 timeout 을 넘기면 프로세스를 종료하고 RuntimeError 를 던진다.
    """
    logger.info("명령 실행: %s", " ".join(cmd))

    if stream_output:
        return _run_streaming(cmd, timeout)

    # capture 모드 (조용히 돌리고 실패 시 요약)
    try:
        result = subprocess.run(
            list(cmd),
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise _not_found(cmd) from e
    except subprocess.TimeoutExpired as e:
        raise _timed_out(cmd, timeout) from e
    except subprocess.CalledProcessError as e:
        stdout = (e.stdout or "").strip()
        stderr = (e.stderr or "").strip()
        detail = ""
        if stderr:
            detail = "\nstderr:\n" + shorten(stderr, width=2000)
        elif stdout:
            detail = "\nstdout:\n" + shorten(stdout, width=2000)
        raise RuntimeError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={e.returncode}){detail}"
        ) from e

    if result.stdout:
        logger.debug("명령 stdout: %s", shorten(result.stdout.strip(), width=2000))
    if result.stderr:
        logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))
    return RunResult(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")


def execute_command(
    command: str,
    *,
    dry_run: bool = False,
    stream_output: bool = True,
    timeout: float | None = 1800.0,
) -> bool:
    """
    완성된 명령 문자열을 실행하고 성공 여부를 반환한다.

    dry_run=True 이면 실행하지 않고 명령만 출력한다.
    실패해도 재시도하지 않는다.
    """
    if dry_run:
        logger.info("dry-run: 명령을 실행하지 않습니다.")
        sys.stdout.write(command + "\n")
        sys.stdout.flush()
        return True

    try:
        run_command(shlex.split(command), stream_output=stream_output, timeout=timeout)
    except RuntimeError:
        logger.exception("명령 실행 실패: %s", command)
        return False
    return True
