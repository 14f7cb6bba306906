"""
container_flags
---------------

컨테이너 하나(primary 또는 sidecar)에 해당하는 gcloud run deploy 플래그를 만든다.

멀티 컨테이너 배포(sidecar 1개 이상)에서는 모든 컨테이너 플래그 앞에
--container=<이름> 을 붙여야 gcloud 가 어느 컨테이너 설정인지 구분할 수 있다.
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional, Tuple

from .config import ContainerSpec
from .gcp_secrets import parse_secret_refs
from .logging_utils import get_logger


logger = get_logger(__name__)


# env 값에 쉼표가 들어가면 gcloud 의 ^DELIM^ 구분자 문법을 쓴다.
_ALT_DELIMITERS = ("@", "|", ";", "#", "~")
# 구분자로 쓸 수 없는 문자
_RESERVED = {"^", "=", ",", " "}


def _pick_delimiter(used: set) -> str:
    for delim in _ALT_DELIMITERS:
        if delim not in used:
            return delim
    # 값에 없는 문자가 나올 때까지 코드포인트 순으로 찾는다.
    code = 0x21
    while True:
        ch = chr(code)
        if ch not in used and ch not in _RESERVED and ch.isprintable():
            return ch
        code += 1


def _join_env_vars(env_vars: Mapping[str, str]) -> str:
    pairs = [f"{k}={v}" for k, v in env_vars.items()]
    if not any("," in p for p in pairs):
        return ",".join(pairs)
    delim = _pick_delimiter(set("".join(pairs)))
    return f"^{delim}^" + delim.join(pairs)


def bool_flag(name: str, value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    return f"--{name}" if value else f"--no-{name}"


def _joined(values: List[str]) -> Optional[str]:
    return ",".join(values) if values else None


# (플래그 이름, 값 추출 함수) - 순서가 곧 출력 순서
_VALUE_FLAGS: List[Tuple[str, Callable[[ContainerSpec], Optional[object]]]] = [
    ("image", lambda s: s.image),
    ("source", lambda s: s.source),
    ("port", lambda s: s.port),
    ("memory", lambda s: s.memory),
    ("cpu", lambda s: s.cpu),
]

_TRAILING_FLAGS: List[Tuple[str, Callable[[ContainerSpec], Optional[object]]]] = [
    ("add-volume-mount", lambda s: s.volume_mount),
    ("startup-probe", lambda s: s.startup_probe),
    ("liveness-probe", lambda s: s.liveness_probe),
    ("command", lambda s: _joined(s.command)),
    ("args", lambda s: _joined(s.args)),
    ("depends-on", lambda s: _joined(s.depends_on)),
]


def container_flags(
    spec: ContainerSpec,
    with_container_name: bool,
    default_name: Optional[str] = None,
) -> List[str]:
    """
    ContainerSpec 하나를 플래그 목록으로 변환한다.

    with_container_name=True 이면 --container=<이름> 을 먼저 출력한다.
    이름은 spec.container_name, 없으면 default_name 을 사용한다.
    값이 없는 필드는 출력하지 않는다.
    """
    flags: List[str] = []

    if with_container_name:
        name = spec.container_name or default_name
        if name:
            flags.append(f"--container={name}")

    for flag, getter in _VALUE_FLAGS:
        value = getter(spec)
        if value is not None and value != "":
            flags.append(f"--{flag}={value}")

    http2 = bool_flag("use-http2", spec.use_http2)
    if http2:
        flags.append(http2)

    if spec.env_vars:
        flags.append(f"--set-env-vars={_join_env_vars(spec.env_vars)}")

    secrets = parse_secret_refs(spec.secrets)
    if secrets:
        flags.append("--set-secrets=" + ",".join(str(ref) for ref in secrets))

    for flag, getter in _TRAILING_FLAGS:
        value = getter(spec)
        if value is not None and value != "":
            flags.append(f"--{flag}={value}")

    return flags


def sidecar_flags(sidecars: List[ContainerSpec]) -> List[str]:
    """sidecar 플래그를 선언 순서대로 이어 붙인다. 이름이 없으면 sidecar-<n>."""
    flags: List[str] = []
    for idx, spec in enumerate(sidecars, start=1):
        flags.extend(container_flags(spec, True, default_name=f"sidecar-{idx}"))
    return flags
