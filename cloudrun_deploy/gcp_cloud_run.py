"""
gcp_cloud_run
-------------

DeploymentConfig 를 `gcloud run deploy` 명령으로 컴파일하는 모듈.

파일/프로세스 접근 없이 동작하는 순수 함수들로 구성된다.
같은 설정을 넣으면 항상 같은 순서의 토큰이 나온다.
"""

from __future__ import annotations

import shlex
from typing import Callable, List, Optional, Tuple

from .config import DeploymentConfig
from .container_flags import bool_flag, container_flags, sidecar_flags
from .logging_utils import get_logger


logger = get_logger(__name__)


GCLOUD_RUN_DEPLOY = ["gcloud", "run", "deploy"]
GCLOUD_BETA_RUN_DEPLOY = ["gcloud", "beta", "run", "deploy"]


# (플래그 이름, 값 추출 함수) - 순서가 곧 출력 순서
_PRE_TAG_FLAGS: List[Tuple[str, Callable[[DeploymentConfig], Optional[object]]]] = [
    ("min-instances", lambda c: c.min_instances),
    ("max-instances", lambda c: c.max_instances),
    ("concurrency", lambda c: c.concurrency),
    ("execution-environment", lambda c: c.execution_environment),
    ("vpc-connector", lambda c: c.vpc_connector),
    ("vpc-egress", lambda c: c.vpc_egress),
    ("ingress", lambda c: c.ingress),
    ("revision-suffix", lambda c: c.revision_suffix),
    ("service-account", lambda c: c.service_account),
    ("timeout", lambda c: c.timeout),
    ("add-cloudsql-instances", lambda c: c.cloud_sql_instance),
]


def uses_beta(cfg: DeploymentConfig) -> bool:
    """볼륨은 아직 beta 기능이라 volume_name 이 있으면 beta 명령을 사용한다."""
    return bool(cfg.volume_name)


def base_command(cfg: DeploymentConfig) -> List[str]:
    if uses_beta(cfg):
        logger.warning('볼륨은 아직 beta 기능이므로 "gcloud beta run deploy" 로 배포합니다.')
        return list(GCLOUD_BETA_RUN_DEPLOY)
    return list(GCLOUD_RUN_DEPLOY)


def resolve_deploy_name(cfg: DeploymentConfig, fallback: Optional[str] = None) -> str:
    """
    배포(서비스) 이름을 결정한다. cfg.name 이 없으면 프로젝트 이름을 사용한다.
    둘 다 없으면 ValueError.
    """
    name = cfg.name or fallback
    if not name:
        raise ValueError("배포 이름이 필요합니다 (name)")
    return name


def primary_flags(
    cfg: DeploymentConfig,
    name: str,
    version_tag: Optional[str] = None,
) -> List[str]:
    """
    서비스 단위 플래그를 만든다. 첫 토큰은 positional 인 서비스 이름이다.

    --tag 는 tag_with_version 이 켜져 있고 버전 해석에 성공했을 때만 붙는다.
    """
    flags: List[str] = [
        name,
        f"--project={cfg.project}",
        "--platform=managed",
        "--quiet",
        f"--region={cfg.region}",
    ]

    for flag, getter in _PRE_TAG_FLAGS:
        value = getter(cfg)
        if value is not None and value != "":
            flags.append(f"--{flag}={value}")

    if cfg.tag_with_version and version_tag:
        flags.append(f"--tag={version_tag}")

    cpu_boost = bool_flag("cpu-boost", cfg.cpu_boost)
    if cpu_boost:
        flags.append(cpu_boost)

    if cfg.no_traffic:
        flags.append("--no-traffic")

    # 미설정이면 공개 서비스로 배포
    allow = True if cfg.allow_unauthenticated is None else cfg.allow_unauthenticated
    flags.append(bool_flag("allow-unauthenticated", allow))

    if cfg.volume_name:
        flags.append(f"--add-volume=name={cfg.volume_name}")

    return flags


def compile_tokens(
    cfg: DeploymentConfig,
    *,
    version_tag: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> List[str]:
    """
    gcloud 명령 + 서비스 플래그 + primary 컨테이너 플래그 + sidecar 플래그(선언 순서).
    """
    name = resolve_deploy_name(cfg, fallback_name)
    multi = cfg.has_sidecars

    tokens = base_command(cfg)
    tokens.extend(primary_flags(cfg, name, version_tag))
    tokens.extend(container_flags(cfg.container, multi, default_name=name))
    tokens.extend(sidecar_flags(cfg.sidecars))
    return tokens


def join_tokens(tokens: List[str]) -> str:
    # 공백/따옴표 등이 없는 토큰은 그대로 나온다.
    return " ".join(shlex.quote(t) for t in tokens)


def compile_command(
    cfg: DeploymentConfig,
    *,
    version_tag: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> str:
    return join_tokens(compile_tokens(cfg, version_tag=version_tag, fallback_name=fallback_name))
